"""
Streamlit UI -- Talk to Your Data.

A thin chat client over the API:
  - Persistent chat history (session state)
  - Sidebar with the live table/column catalog from GET /schema
  - Collapsible generated-SQL panel per answer
  - Results table limited to the first rows, with a note when truncated
"""
from __future__ import annotations

import httpx
import pandas as pd
import streamlit as st

from talkdata.core.config import get_settings

API_BASE = get_settings().api_base_url
_TIMEOUT = 30
PREVIEW_ROWS = 10

EXAMPLES = [
    "What was my biggest transaction last month?",
    "Show all transactions",
    "How much did I send to John last year?",
]

st.set_page_config(page_title="Talk to Your Data", layout="wide")


if "messages" not in st.session_state:
    st.session_state.messages = []

if "schema" not in st.session_state:
    st.session_state.schema = None


def _load_schema() -> None:
    """Fetch /schema from the API; cache in session_state."""
    try:
        st.session_state.schema = httpx.get(f"{API_BASE}/schema", timeout=5).json()
    except (httpx.HTTPError, ValueError):
        st.session_state.schema = None


def preview_frame(rows: list[dict]) -> tuple[pd.DataFrame, str | None]:
    """First PREVIEW_ROWS rows as a DataFrame, plus a truncation note."""
    frame = pd.DataFrame(rows[:PREVIEW_ROWS])
    note = None
    if len(rows) > PREVIEW_ROWS:
        note = f"Showing first {PREVIEW_ROWS} of {len(rows)} results"
    return frame, note


def _ask(question: str) -> dict:
    try:
        resp = httpx.post(f"{API_BASE}/query", json={"query": question}, timeout=_TIMEOUT)
        return resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        return {"error": f"Server error: {exc}", "summary": f"Server error: {exc}"}


def _render_answer(data: dict) -> None:
    st.markdown(data.get("summary") or data.get("error", ""))
    if data.get("suggestion"):
        st.caption(data["suggestion"])
    if data.get("sql"):
        with st.expander("Generated SQL"):
            st.code(data["sql"], language="sql")
            if data.get("params"):
                st.json(data["params"])
    rows = (data.get("result") or {}).get("rows") or []
    if rows:
        frame, note = preview_frame(rows)
        st.dataframe(frame, use_container_width=True)
        if note:
            st.caption(note)


with st.sidebar:
    st.title("Schema")
    if st.button("Refresh schema", use_container_width=True) or st.session_state.schema is None:
        _load_schema()
    schema = st.session_state.schema
    if not schema:
        st.warning("API not reachable")
    elif "error" in schema:
        st.error(schema["error"])
    else:
        for table, columns in schema.items():
            with st.expander(table):
                st.write(", ".join(f"{c['name']} ({c['type']})" for c in columns))

st.title("Talk to Your Data")
st.caption("Ask questions about your banking data in plain English. Try: " + " / ".join(EXAMPLES))

for msg in st.session_state.messages:
    with st.chat_message(msg["role"]):
        if msg["role"] == "user":
            st.markdown(msg["content"])
        else:
            _render_answer(msg["content"])

if question := st.chat_input("Ask about your accounts, transactions, transfers..."):
    st.session_state.messages.append({"role": "user", "content": question})
    with st.chat_message("user"):
        st.markdown(question)
    with st.chat_message("assistant"):
        with st.spinner("Thinking..."):
            answer = _ask(question)
        _render_answer(answer)
    st.session_state.messages.append({"role": "assistant", "content": answer})
