"""
RTFS - Parser Page

Parse an RTFS expression or task into:
- AST (as JSON)
- AST tree view
- Canonical RTFS text
"""

import os
import sys

import streamlit as st

# Project root
current_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if current_dir not in sys.path:
    sys.path.insert(0, current_dir)

from rtfs_mapper import RTFSMapper, build_ast_tree_html  # noqa: E402
from rtfs_parser import RTFSParseError  # noqa: E402

st.set_page_config(
    page_title="RTFS - Parser",
    page_icon="🌳",
    layout="wide",
)

st.title("🌳 RTFS Parser")
st.caption("Parse an RTFS expression or task map into its AST.")

st.markdown("---")

col_left, col_right = st.columns([1, 1])

with col_left:
    st.subheader("✍️ RTFS Source")

    example = '(log-step :id s1 (parallel [[a (tool:fetch "A")] [b (tool:fetch "B")]]))'

    rtfs_source = st.text_area(
        "Enter RTFS source",
        value=st.session_state.get("rtfs_source", example),
        height=200,
        key="rtfs_source_editor",
        help="Write one RTFS form: an expression or a task map with :id and :plan.",
    )

    st.markdown("**Example:**")
    st.code(example, language="clojure")

    run_parse = st.button("🧭 Parse to AST", type="primary", use_container_width=True)

with col_right:
    st.subheader("🧩 Parse Result")

    if run_parse:
        if not rtfs_source.strip():
            st.error("❌ Please enter RTFS source.")
        else:
            mapper = RTFSMapper()
            try:
                ast = mapper.text_to_ast(rtfs_source)
            except RTFSParseError as e:
                st.error(f"❌ {e.kind.value}: {e.message}")
                if e.fragment is not None:
                    st.code(e.describe(), language="text")
            else:
                st.success("✅ Parse successful.")

                with st.expander("🌳 AST Tree View", expanded=True):
                    st.markdown(build_ast_tree_html(ast), unsafe_allow_html=True)

                with st.expander("🌳 AST (JSON)", expanded=False):
                    st.json(mapper.ast_to_dict(ast))

                with st.expander("📝 Canonical RTFS", expanded=False):
                    st.code(mapper.ast_to_text(ast), language="clojure")
    else:
        st.info("💡 Enter RTFS source on the left, then click **Parse to AST**.")
