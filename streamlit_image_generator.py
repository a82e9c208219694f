import streamlit as st
import os
import html
import asyncio
from datetime import datetime

from config import load_settings, configure_logging
from image_export import ExportResult, disk_saver, export_image, safe_filename
from image_generator import ImageGeneratorController, OutcomeStatus

settings = load_settings()
configure_logging(settings)

# Configure Streamlit page
st.set_page_config(
    page_title="Gemini AI Image Generator",
    page_icon="🎨",
    layout="centered"
)

# Custom CSS for the terminal-style debug panel
st.markdown("""
<style>
.terminal-text {
    font-family: 'Courier New', monospace;
    background-color: #1e1e1e;
    color: #00ff00;
    padding: 10px;
    border-radius: 5px;
    margin: 5px 0;
    white-space: pre-wrap;
    max-height: 12rem;
    overflow: auto;
    font-size: 0.75rem;
}
.stButton > button {
    width: 100%;
}
</style>
""", unsafe_allow_html=True)


class ImageGeneratorApp:
    """Single-page word-to-image generator"""

    def __init__(self):
        self.initialize_session_state()

    def initialize_session_state(self):
        """Initialize all session state variables"""
        defaults = {
            "controller": None,
            "loading": False,
            "pending_request": None,
            "save_message": None,
            "save_error": None
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

        if st.session_state.controller is None:
            st.session_state.controller = ImageGeneratorController(
                settings.gemini_api_key,
                model=settings.gemini_model,
                timeout_ms=settings.request_timeout_ms
            )

    @property
    def controller(self) -> ImageGeneratorController:
        return st.session_state.controller

    def run_pending_generation(self):
        """Run the request queued by the Generate button on the previous rerun"""
        word, style = st.session_state.pending_request
        try:
            with st.spinner("Generating..."):
                asyncio.run(self.controller.submit(word, style))
        finally:
            st.session_state.pending_request = None
            st.session_state.loading = False
        st.rerun()

    def request_generation(self, word: str, style: str):
        st.session_state.pending_request = (word, style)
        st.session_state.loading = True
        st.session_state.save_message = None
        st.session_state.save_error = None
        st.rerun()

    def save_to_folder(self, word: str):
        outcome = self.controller.outcome
        request = self.controller.last_request
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        folder = os.path.join(settings.output_dir, f"{timestamp}_{safe_filename(word)[:30]}")
        metadata = {
            'subject': request.subject if request else word,
            'style': request.style if request else "",
            'prompt': request.prompt if request else "",
            'model': settings.gemini_model,
            'mime_type': outcome.payload.mime_type if outcome.payload else ""
        }

        result = export_image(outcome.payload, word, saver=disk_saver(folder, metadata))
        if result.error:
            st.session_state.save_error = result.error
        elif result.saved_path:
            st.session_state.save_message = f"📁 Saved to: {result.saved_path}"

    def terminal_print(self, message: str) -> str:
        """Wrap text in the terminal-style block"""
        return f'<div class="terminal-text">{html.escape(message)}</div>'

    def render_debug(self):
        if len(self.controller.trace) == 0:
            return
        st.markdown("**Debug Information:**")
        st.markdown(self.terminal_print("\n".join(self.controller.trace)), unsafe_allow_html=True)

    def render_ui(self):
        """Render the main UI"""
        st.title("🎨 Gemini AI Image Generator")

        word = st.text_input("Word to Visualize", placeholder="Enter a word", key="word")
        style = st.text_input(
            "Style Description",
            placeholder="Enter style (e.g., watercolor, pixel art, 3D rendering)",
            key="style"
        )

        outcome = self.controller.outcome
        loading = st.session_state.loading or self.controller.in_flight
        has_image = outcome.status is OutcomeStatus.SUCCEEDED

        col1, col2, col3 = st.columns(3)
        with col1:
            if st.button(
                "Generating..." if loading else "Generate Image",
                type="primary",
                disabled=loading or not word.strip() or not style.strip(),
                use_container_width=True
            ):
                self.request_generation(word, style)

        # Name the download after the word that produced the image
        request = self.controller.last_request
        file_word = request.subject.strip() if request else word.strip()

        with col2:
            export = export_image(outcome.payload, file_word) if has_image else ExportResult()
            st.download_button(
                label="Save Image",
                data=export.request.data if export.ok else b"",
                file_name=export.request.file_name if export.ok else "image.png",
                mime=export.request.mime_type if export.ok else "image/png",
                disabled=not export.ok,
                use_container_width=True
            )
        with col3:
            if st.button("Save to folder", disabled=not has_image, use_container_width=True):
                self.save_to_folder(file_word)

        if outcome.status is OutcomeStatus.BLOCKED:
            st.warning(outcome.message)
        elif outcome.is_error:
            st.error(outcome.message)

        if export.error:
            st.error(export.error)
        if st.session_state.save_error:
            st.error(st.session_state.save_error)
        if st.session_state.save_message:
            st.success(st.session_state.save_message)

        if export.ok:
            st.subheader("Generated Image:")
            st.image(export.request.data, caption=f"AI generated image of {file_word}", use_container_width=True)

        self.render_debug()

        # Sidebar
        with st.sidebar:
            st.header("📖 Instructions")
            st.markdown("""
            1. **Type a word** to visualize
            2. **Describe a style** (watercolor, pixel art, ...)
            3. Click **Generate Image**
            4. **Save Image** downloads it, **Save to folder** keeps a copy with metadata
            """)
            st.caption(f"Model: {settings.gemini_model}")
            if not settings.gemini_api_key:
                st.warning("⚠️ GEMINI_API_KEY is not set in the environment or .env file")

        # Generate after drawing the page so the button shows as disabled meanwhile
        if st.session_state.pending_request:
            self.run_pending_generation()


def main():
    app = ImageGeneratorApp()
    app.render_ui()


if __name__ == "__main__":
    main()
