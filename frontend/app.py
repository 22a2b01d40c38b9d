"""Streamlit front-end: prompt form and batched generation with live progress."""

import asyncio
import base64
from typing import List

import requests
import streamlit as st

from imagestudio.config.options import Options
from imagestudio.config.settings import Settings
from imagestudio.models.generate import (
    GeneratedImage,
    GenerationMode,
    GenerationRequest,
    GenerationState,
    clamp_count,
)
from imagestudio.services.image_generation_service.client import GenerationClient
from imagestudio.services.image_generation_service.generate import Generation
from imagestudio.services.stats_service.usage import HttpUsageTracker
from imagestudio.services.upload_service.uploader import UploadTray
from imagestudio.handlers.error_handler import InputValidationError
from imagestudio.utility.logger import AppLogger
from imagestudio.utility.utils import Helper

AppLogger.init()
logger = AppLogger.get_logger(__name__)
settings = Settings()
options = Options()

# =========================================================
# Setup
# =========================================================
st.set_page_config(page_title="Image Studio", page_icon="🎨", layout="centered")
st.title("🎨 Image Studio")
st.caption("Describe an image, pick a style, and let the AI paint it.")

st.session_state.setdefault("images", [])
st.session_state.setdefault("error", None)
st.session_state.setdefault("last_request", None)
st.session_state.setdefault("enhancing", False)
st.session_state.setdefault("seen_uploads", set())
st.session_state.setdefault("prompt", "")


def record_page_view() -> None:
    try:
        requests.get(f"{settings.backend_url}/api/stats/view", timeout=3)
    except requests.RequestException as e:
        logger.warning(f"Page view tracking failed: {e}")


if "viewed" not in st.session_state:
    st.session_state.viewed = True
    record_page_view()


def new_session() -> Generation:
    client = GenerationClient(
        settings=settings,
        usage_tracker=HttpUsageTracker(settings.backend_url),
    )
    return Generation(client=client)


def get_tray() -> UploadTray:
    if "tray" not in st.session_state:
        st.session_state.tray = UploadTray()
    return st.session_state.tray


def release_tray() -> None:
    """Drop every preview when the uploader leaves the page."""
    tray = st.session_state.pop("tray", None)
    if tray is not None:
        tray.close()
    st.session_state.seen_uploads = set()


# =========================================================
# Rendering helpers
# =========================================================
def render_grid(slot, images: List[GeneratedImage], actions: bool = False) -> None:
    """Two-column grid; `actions` adds zoom and download controls per image."""
    with slot.container():
        cols = st.columns(2)
        for i, image in enumerate(images):
            raw = base64.b64decode(image.b64_json)
            with cols[i % 2]:
                st.image(raw, caption=image.revised_prompt or None)
                if not actions:
                    continue
                zoom_col, download_col = st.columns(2)
                with zoom_col.popover("🔍 Zoom", use_container_width=True):
                    st.image(raw, use_container_width=True)
                download_col.download_button(
                    "⬇️ Download",
                    data=raw,
                    file_name=Helper.download_filename(image.revised_prompt),
                    mime="image/png",
                    key=f"download_{i}",
                    use_container_width=True,
                )


def render_progress(slot, state: GenerationState) -> None:
    progress = state.progress
    if progress is not None and progress.total > 1:
        slot.progress(
            progress.completed / progress.total,
            text=f"Generating image {progress.completed} of {progress.total}...",
        )
    elif state.is_loading:
        slot.info("Creating your masterpiece... this may take a moment.")
    else:
        slot.empty()


async def run_generation(request: GenerationRequest, progress_slot, grid_slot) -> GenerationState:
    session = new_session()

    def on_state(state: GenerationState) -> None:
        render_progress(progress_slot, state)
        render_grid(grid_slot, state.images)

    session.subscribe(on_state)
    try:
        return await session.generate(request)
    finally:
        await session.aclose()


def start_generation(request: GenerationRequest, progress_slot, grid_slot) -> None:
    st.session_state.error = None
    st.session_state.last_request = request
    state = asyncio.run(run_generation(request, progress_slot, grid_slot))
    st.session_state.images = state.images
    st.session_state.error = state.error.message if state.error else None


def on_enhance() -> None:
    if st.session_state.enhancing or not st.session_state.prompt:
        return
    st.session_state.enhancing = True
    st.session_state.error = None
    session = new_session()

    async def enhance():
        try:
            return await session.enhance_prompt(st.session_state.prompt)
        finally:
            await session.aclose()

    try:
        enhanced = asyncio.run(enhance())
        if enhanced:
            st.session_state.prompt = enhanced
        elif session.state.error is not None:
            st.session_state.error = session.state.error.message
    finally:
        st.session_state.enhancing = False


# =========================================================
# Form
# =========================================================
mode_label = st.radio(
    "Mode",
    ["Text to Image", "Image to Image"],
    horizontal=True,
)
mode = (
    GenerationMode.TEXT_TO_IMAGE
    if mode_label == "Text to Image"
    else GenerationMode.IMAGE_TO_IMAGE
)

st.text_area(
    "Prompt",
    key="prompt",
    placeholder="A majestic German Shepherd with an alert, intelligent expression...",
)
st.button(
    "✨ Enhance",
    on_click=on_enhance,
    disabled=not st.session_state.prompt or st.session_state.enhancing,
)
negative_prompt = st.text_area(
    "Negative prompt",
    placeholder="blurry, text, watermark, extra fingers",
)

if mode == GenerationMode.IMAGE_TO_IMAGE:
    tray = get_tray()
    files = st.file_uploader(
        "Source images", type=["png", "jpg", "jpeg", "webp"], accept_multiple_files=True
    )
    for f in files or []:
        if f.file_id in st.session_state.seen_uploads:
            continue
        st.session_state.seen_uploads.add(f.file_id)
        try:
            tray.add(f.getvalue(), mime_type=f.type, filename=f.name)
        except InputValidationError as e:
            st.warning(f"{f.name}: {e.message}")

    if len(tray):
        cols = st.columns(4)
        for i, preview in enumerate(tray.previews):
            with cols[i % 4]:
                st.image(str(preview))
                if st.button("🗑️", key=f"remove_{preview.name}"):
                    tray.remove(i)
                    st.rerun()
    source_images = tray.images
else:
    release_tray()
    source_images = []

col1, col2 = st.columns(2)
with col1:
    count = st.slider(
        "Number of images",
        min_value=options.count_range["min"],
        max_value=options.count_range["max"],
        value=options.count_range["default"],
    )
    size = st.selectbox("Size", options.sizes)
with col2:
    quality = st.selectbox("Quality", options.qualities)
    style = st.selectbox("Style", options.styles)

progress_slot = st.empty()
error_slot = st.empty()
grid_slot = st.empty()

generate_disabled = (
    st.session_state.enhancing
    or not st.session_state.prompt
    or (mode == GenerationMode.IMAGE_TO_IMAGE and not source_images)
)
if st.button("🎨 Generate", type="primary", use_container_width=True, disabled=generate_disabled):
    request = GenerationRequest(
        prompt=st.session_state.prompt,
        negative_prompt=negative_prompt or None,
        count=clamp_count(count),
        size=size,
        quality=quality,
        style=style,
        mode=mode,
        source_images=source_images,
    )
    start_generation(request, progress_slot, grid_slot)

if st.session_state.error:
    with error_slot.container():
        st.error(f"Something went wrong! {st.session_state.error}")
        retry_col, close_col = st.columns(2)
        if retry_col.button("Retry") and st.session_state.last_request is not None:
            start_generation(st.session_state.last_request, progress_slot, grid_slot)
            st.rerun()
        if close_col.button("Dismiss"):
            st.session_state.error = None
            st.rerun()

if st.session_state.images:
    render_grid(grid_slot, st.session_state.images, actions=True)
elif not st.session_state.error:
    grid_slot.markdown("#### Your artwork will appear here\nLet your imagination run wild!")
