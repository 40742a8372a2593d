"""
RTFS Parser - Home Page

Main entry point with navigation to the parser page.
"""

import streamlit as st

st.set_page_config(
    page_title="RTFS - Home",
    page_icon="🧭",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.title("🧭 RTFS")
st.markdown("**Reasoning Task Flow Specification - task and plan parser**")

st.markdown("---")

# Navigation
st.header("📚 Navigation")

st.subheader("🌳 Parser")
st.markdown("""
- Write an RTFS expression or a full task map
- See the parsed AST as JSON and as a tree
- Get the canonical RTFS text back
""")
if st.button("Go to Parser Page", type="primary", use_container_width=True):
    st.switch_page("pages/0_parser.py")

st.markdown("---")

# About section
st.header("ℹ️ About RTFS")

st.markdown("""
An RTFS task is a map with an `:id` and a `:plan`. The plan is code built from
a small set of special forms:

- `def`, `let`, `fn`, `if`, `do`
- `parallel` / `join` for concurrent steps
- `log-step` for steps recorded in the execution log

Anything else in call position is a function or tool call.

**Example task:**
```clojure
{:id "task-001"
 :source :human-instruction
 :plan (do
         (log-step :id fetch
           (parallel [[a (tool:fetch "A")] [b (tool:fetch "B")]]))
         (tool:aggregate (join a b)))}
```
""")
