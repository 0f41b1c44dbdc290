"""Environment-based configuration for the IDP brain (document pipeline)."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """IDP brain settings, loaded from environment variables."""

    # Server
    PORT: int = 8092

    # Gemini connection (empty key = AI processing disabled, local dev default)
    GEMINI_API_KEY: str = ""
    GEMINI_API_URL: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-2.5-flash:generateContent"
    )

    # Single attempt per call, bounded by these timeouts
    COMPLETION_TIMEOUT_SECONDS: int = 120
    COMPLETION_CONNECT_TIMEOUT: int = 30

    # Sampling parameters
    TEMPERATURE: float = 0.1
    TOP_K: int = 32
    TOP_P: float = 1.0
    MAX_OUTPUT_TOKENS: int = 4096

    # Uploads
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10 MB
    ALLOWED_EXTENSIONS: list[str] = ["pdf", "jpg", "jpeg", "png", "gif", "bmp", "tiff"]

    # Optional image cleanup before OCR (PDFs are never touched)
    IMAGE_PREPROCESSING: bool = False
    MAX_IMAGE_SIDE: int = 2048

    model_config = {"env_prefix": "", "case_sensitive": True}


settings = Settings()
