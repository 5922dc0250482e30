# Fixed phrases spoken by the scan controller
CAMERA_ACTIVE = "Camera active. Ready to scan."
SCANNING_TEXT = "Scanning text."
NO_TEXT_FOUND = "No text found."
ERROR_READING = "Error reading label."

# Result labels shown next to the camera view
TEXT_LABEL_PREFIX = "Text: "
NO_TEXT_LABEL = "No text found"

# Pre-rendered clip for each fixed phrase (placed under assets/<voice>/<filename>)
# Anything not listed here is spoken dynamically
LINE_CLIP: dict[str, str] = {
    CAMERA_ACTIVE: "camera_active.mp3",
    SCANNING_TEXT: "scanning_text.mp3",
    NO_TEXT_FOUND: "no_text_found.mp3",
    ERROR_READING: "error_reading.mp3",
}
