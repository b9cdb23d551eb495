"""
Page chrome shared by the app and the glossary page.
"""
import streamlit as st
from typing import Optional

from governor.ui.state import try_login


def render_header():
    st.title("Economic Governor + Full-Funnel Diagnostician")
    st.caption("Math-first. Skeptical. Anti-attribution. No storytelling. No scaling broken economics.")


def section_header(title: str, description: Optional[str] = None):
    st.subheader(title)
    if description:
        st.caption(description)


CALLOUTS = {
    "info": st.info,
    "warning": st.warning,
    "error": st.error,
    "success": st.success,
}


def info_box(title: str, content: str, type: str = "info"):
    CALLOUTS.get(type, st.info)(f"**{title}**: {content}")


def render_password_gate():
    """Password form; reruns the app once the password is accepted."""
    st.title("Economic Governor")
    st.caption("Enter password to continue.")

    with st.form("password_gate"):
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Enter")

    if submitted:
        if try_login(password):
            st.rerun()
        st.error("Incorrect password.")
