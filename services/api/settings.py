# services/api/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field
import tempfile
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    # Preview rendering: scale factor passed to the page rasterizer.
    # Rough DPI = 72 * render_scale.
    render_scale: float = 1.5

    # Geometry limits (fractions of the page's rendered size)
    min_size_percent: float = 0.05
    max_corner_size_percent: float = 0.9

    # Text auto-fit at export time
    base_font_size: float = 24.0
    text_fit_margin: float = 0.85

    # Ink capture surface (native pixels) and synthetic pressure band
    ink_canvas_width: int = 600
    ink_canvas_height: int = 200
    ink_pressure_min: float = 0.5
    ink_pressure_max: float = 0.8
    ink_stroke_weight: float = 3.0

    # Font fetching (catalog fonts are downloaded once per export run)
    font_fetch_timeout: float = 30.0
    # Fetched TTF files are written here so the PDF writer can embed them
    font_cache_dir: str = Field(
        default=str(Path(tempfile.gettempdir()) / "overlay_editor_fonts"),
        description="Directory for downloaded font files",
    )

    # Upload limits
    max_upload_mb: int = 50

    # CORS settings
    allowed_origins: str = "http://localhost:3000,http://localhost:3001,http://localhost:8000"

    log_level: str = "INFO"

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(Path(__file__).resolve().parent / ".env"),
        extra="ignore",
    )

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
