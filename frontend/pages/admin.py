"""Streamlit admin dashboard: password login, usage stats, key status."""

import streamlit as st

from imagestudio.handlers.error_handler import ImageStudioError
from imagestudio.services.auth_service.admin_client import AdminClient
from imagestudio.utility.logger import AppLogger

AppLogger.init()
logger = AppLogger.get_logger(__name__)

st.set_page_config(page_title="Image Studio Admin", page_icon="🔐", layout="centered")


def get_client() -> AdminClient:
    # one cookie jar per browser session
    if "admin_client" not in st.session_state:
        st.session_state.admin_client = AdminClient()
    return st.session_state.admin_client


def render_login(client: AdminClient) -> None:
    st.title("🔐 Admin Login")
    with st.form("login"):
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Log in", use_container_width=True)
    if submitted:
        error = client.login(password)
        if error:
            st.error(error)
        else:
            st.rerun()


def render_dashboard(client: AdminClient) -> None:
    st.title("📊 Admin Dashboard")
    stats = client.stats()
    views_col, images_col = st.columns(2)
    views_col.metric("Page views", stats.page_views)
    images_col.metric("Images generated", stats.images_generated)
    st.caption(f"Last updated: {stats.last_updated}")

    st.subheader("Settings")
    st.write(f"Gemini API key: **{client.gemini_key_status()}**")
    st.caption("API keys are managed through the server environment (.env).")

    if st.button("Log out"):
        client.logout()
        st.rerun()


client = get_client()
try:
    if client.is_authenticated():
        render_dashboard(client)
    else:
        render_login(client)
except ImageStudioError as e:
    logger.error(f"Admin dashboard failed: {e.message}")
    st.error(f"Could not load the admin dashboard: {e.message}")
