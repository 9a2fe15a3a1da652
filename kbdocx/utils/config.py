"""
Defines configuration and settings for the export process.
"""
from dataclasses import dataclass
from pathlib import Path


@dataclass
class ConversionConfig:
    """
    A container for all settings related to an export task.
    This object is created by the caller (CLI or embedding app) and passed to the ExportPipeline.
    """
    # Output folder or file. None means next to the input / current directory.
    output_path: Path | None = None
    # Overrides the title found in the article (<title> or first <h1>)
    title: str | None = None
    font_family: str = "Arial"
    font_size: int = 22     # half-points, 22 = 11pt
    # Display box for embedded images, in px (width, height)
    image_box: tuple[int, int] = (550, 350)
    keep_image_aspect: bool = False
    add_timestamp: bool = True
    num_threads: int = 0    # 0 means os.cpu_count()
