import asyncio
import logging

import streamlit as st

from pdf2word.config import Settings
from pdf2word.conversion import (
    STATUS_LABELS,
    CandidateFile,
    ConversionFailure,
    ConversionStatus,
    MemorySaver,
    RequestsConversionGateway,
    SessionController,
    SessionState,
    processing_hint,
)
from pdf2word.conversion.download import DOCX_MIME
from pdf2word.logging_config import setup_logging

SETTINGS = Settings.from_env()
setup_logging(SETTINGS.log_level)
logger = logging.getLogger(__name__)


def _reset_state() -> None:
    controller: SessionController | None = st.session_state.get("controller")
    if controller is not None:
        controller.reset()
    for key in ["controller", "result_name", "result_data"]:
        if key in st.session_state:
            del st.session_state[key]
    # Bump the uploader key to clear any previously uploaded file widget state
    st.session_state["upload_key"] = st.session_state.get("upload_key", 0) + 1


async def _run_session(uploaded, text_slot, prog_slot) -> None:
    gateway = RequestsConversionGateway(
        SETTINGS.api_base,
        upload_timeout=SETTINGS.upload_timeout,
        request_timeout=SETTINGS.request_timeout,
    )
    saver = MemorySaver()
    controller = SessionController(gateway, saver, poll_interval=SETTINGS.poll_interval)

    def render(state: SessionState) -> None:
        if state.is_uploading:
            text_slot.write(f"Uploading... {state.upload_progress}%")
            prog_slot.progress(state.upload_progress)
        elif state.active_job is not None:
            label, description = STATUS_LABELS[state.active_job.status]
            hint = processing_hint(state.active_job)
            text_slot.write(f"**{label}** · {hint or description}")

    unsubscribe = controller.subscribe(render)
    candidate = CandidateFile.from_bytes(uploaded.name, uploaded.getvalue(), uploaded.type or "")
    try:
        if await controller.start(candidate):
            await controller.wait()
        if controller.can_download:
            try:
                await controller.download()
            except ConversionFailure as e:
                # already recorded as state.last_error
                logger.warning("Download failed: %s", e)
    finally:
        # the placeholders belong to this run; later reruns read controller.state
        unsubscribe()
        controller.poller.stop()
    st.session_state["controller"] = controller
    if saver.files:
        name, data = next(iter(saver.files.items()))
        st.session_state["result_name"] = name
        st.session_state["result_data"] = data


def _show_error(controller: SessionController) -> None:
    err = controller.state.last_error
    if err is None:
        return
    title = f"{err.title} ({err.code})" if SETTINGS.show_error_codes else err.title
    show = {"warning": st.warning, "info": st.info}.get(err.severity, st.error)
    show(f"**{title}**\n\n{err.message}")
    if st.button("Dismiss"):
        controller.dismiss_error()
        st.rerun()


def main() -> None:
    st.set_page_config(page_title="PDF to Word Converter", page_icon="📄", layout="centered")
    st.title("📄 PDF to Word Converter")
    st.caption(f"API base: {SETTINGS.api_base}")

    if st.button("Convert Another File", type="secondary"):
        _reset_state()
        st.rerun()

    if "upload_key" not in st.session_state:
        st.session_state["upload_key"] = 0
    uploaded = st.file_uploader(
        "Drop your PDF here (PDF files up to 100MB)",
        type=["pdf"],
        key=f"uploader-{st.session_state['upload_key']}",
    )

    if uploaded and "controller" not in st.session_state and st.button("Start Conversion", type="primary"):
        with st.status("Converting...", expanded=True) as status_box:
            text_slot = st.empty()
            prog_slot = st.empty()
            asyncio.run(_run_session(uploaded, text_slot, prog_slot))
            job = st.session_state["controller"].state.active_job
            if job is not None and job.status == ConversionStatus.COMPLETED:
                status_box.update(label="Conversion complete!", state="complete")
            else:
                status_box.update(label="Conversion failed", state="error")

    controller: SessionController | None = st.session_state.get("controller")
    if controller is None:
        return
    state = controller.state

    if state.large_file_warning:
        st.info("Large file detected. Conversion may take longer for files over 50MB.")

    job = state.active_job
    if job is not None:
        st.write(f"**{job.original_file_name}** · {job.file_size / 1024 / 1024:.2f} MB")
        if job.is_scanned_pdf and job.status == ConversionStatus.COMPLETED:
            st.caption("OCR Applied")
        if failure := controller.failure_explanation:
            st.error(failure)

    if "result_data" in st.session_state:
        st.success("Your document is ready for download")
        st.download_button(
            label="Download DOCX",
            data=st.session_state["result_data"],
            file_name=st.session_state["result_name"],
            mime=DOCX_MIME,
        )

    _show_error(controller)


if __name__ == "__main__":
    main()
