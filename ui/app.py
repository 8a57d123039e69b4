"""
Streamlit UI for the scan-to-DOCX converter.

Single page: pick a PNG/JPEG scan, enter the API key, watch the progress bar
while the conversion runs through the proxy, then download the .docx.
"""

import asyncio

import streamlit as st

from core.settings import app_settings, converter_settings
from pipeline.core.exceptions import ConversionFailedError
from pipeline.core.logging_config import configure_structured_logging
from pipeline.models.dto import ConversionProgress
from pipeline.orchestrator import create_converter_from_env

configure_structured_logging(level=app_settings.LOG_LEVEL, json_format=app_settings.LOG_JSON)

# --- Page setup ---
st.set_page_config(page_title="Image to Word Converter", layout="centered")

st.title("Image to Word Converter")
st.write(
    "Upload a scanned page; the text is recognized by the document-intelligence "
    f"service via the proxy at `{converter_settings.PROXY_BASE_URL}`."
)

api_key = st.text_input("API key", type="password")

with st.form("upload_form", clear_on_submit=False):
    uploaded_file = st.file_uploader(
        "Choose an image",
        type=["png", "jpg", "jpeg"],
        accept_multiple_files=False,
        help="PNG or JPEG",
    )
    submitted = st.form_submit_button("Convert", type="primary")

if uploaded_file is not None:
    st.image(uploaded_file.getvalue(), caption=uploaded_file.name)

if submitted:
    if not uploaded_file:
        st.warning("Please choose an image first.")
        st.stop()
    if not api_key:
        st.warning("Please enter your API key.")
        st.stop()

    progress_bar = st.progress(0)
    status_text = st.empty()

    def on_progress(progress: ConversionProgress) -> None:
        progress_bar.progress(progress.percent)
        status_text.text(progress.message)

    converter = create_converter_from_env()
    try:
        result = asyncio.run(
            converter.convert(
                image=uploaded_file.getvalue(),
                filename=uploaded_file.name,
                credential=api_key,
                on_progress=on_progress,
            )
        )
    except ConversionFailedError as e:
        st.error(e.user_message)
        st.stop()

    st.download_button(
        "Download Word document",
        data=result.document,
        file_name=result.filename,
        mime=result.content_type,
    )
    with st.expander("Recognized text"):
        st.markdown(result.text)
