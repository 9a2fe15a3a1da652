"""
Handles command-line argument parsing and initiates the conversion.
This is the entry point for the console script.
"""
import argparse
import logging
from pathlib import Path

from .core.batch_processor import BatchProcessor
from .utils.config import ConversionConfig
from .utils.logger import setup_main_logger


log = logging.getLogger("kbdocx")

HTML_SUFFIXES = ('.html', '.htm')


def positive_int_pair():
    """Checks if value is a 'W,H' pair of positive ints."""
    def checker(value):
        try:
            pair = tuple(int(v.strip()) for v in value.split(','))
        except ValueError:
            raise argparse.ArgumentTypeError(f"Value must be two comma separated ints, got {value!r}")
        if len(pair) != 2 or min(pair) <= 0:
            raise argparse.ArgumentTypeError(f"Value must be a comma separated (width, height) pair, got {value!r}")
        return pair
    return checker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kbdocx",
        description="Converts generated knowledge-base HTML articles to .docx documents.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("input_paths", type=Path, nargs="+",
                        help="Input .html files or/and folders separated by a space.")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Output folder or .docx filename (for single input). If omitted, each output is placed next to the input file.")
    parser.add_argument("-t", "--title", default=None,
                        help="Document title. Defaults to the article's <title> or first <h1>.")
    parser.add_argument("--font", default="Arial", help="Body font family.")
    parser.add_argument("--font-size", type=int, default=22, help="Body font size in half-points.")
    parser.add_argument("--image-box", type=positive_int_pair(), default=(550, 350),
                        help="Display box for embedded images in px (width,height).")
    parser.add_argument("--keep-aspect", action="store_true",
                        help="Fit images into the box preserving their aspect ratio.")
    parser.add_argument("--no-timestamp", action="store_true",
                        help="Don't append a timestamp to output filenames.")
    parser.add_argument("--threads", type=int, default=0,
                        help="Number of parallel workers. 0 to use max.")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Console verbosity: -v for warnings, -vv for info, -vvv for debug.")
    return parser


def collect_files(paths: list[Path]) -> list[Path]:
    """Expands folders and filters out anything that isn't an .html file."""
    files: list[Path] = []
    for path in paths:
        if not path.exists():
            log.warning(f"Input path does not exist, skipping: {path}")
            continue
        if path.is_dir():
            for suffix in HTML_SUFFIXES:
                files.extend(sorted(path.rglob(f"*{suffix}")))
        elif path.suffix.lower() in HTML_SUFFIXES:
            files.append(path)
        else:
            log.warning(f"Not an .html file, skipping: {path}")
    return files


def run_cli(argv: list[str] | None = None) -> int:
    """
    The main function for the command-line interface.
    Parses arguments and runs the batch processor. Returns the exit code.
    """
    args = build_parser().parse_args(argv)

    levels = [logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG]
    console_level = levels[min(args.verbose, len(levels) - 1)]
    setup_main_logger(console_level)

    files_to_process = collect_files(args.input_paths)
    if not files_to_process:
        log.error("No .html files found to process.")
        return 1

    config = ConversionConfig(
        output_path=args.output,
        title=args.title,
        font_family=args.font,
        font_size=args.font_size,
        image_box=args.image_box,
        keep_image_aspect=args.keep_aspect,
        add_timestamp=not args.no_timestamp,
        num_threads=args.threads,
    )
    processor = BatchProcessor(config)

    num_files = len(files_to_process)
    log.info(f"Found {num_files} files. Starting conversion...")

    completed_count = 0
    failed_count = 0
    def progress_callback(path: Path, output: Path | None, exc: Exception | None):
        nonlocal completed_count, failed_count
        completed_count += 1
        completed_str = str(completed_count).rjust(len(str(num_files)))
        prefix = f"[{completed_str}/{num_files}]"
        if exc:
            failed_count += 1
            print(f"{prefix} ❌ Error: {path.name}", flush=True)
            print(f"  └─ {exc}", flush=True)
            log.error(f"Failed to convert {path.name}: {exc}", exc_info=False)
        else:
            print(f"{prefix} ✅ Done: {path.name} -> {output}", flush=True)

    processor.run(files_to_process, progress_callback)

    print("\nBatch conversion finished.")
    return 1 if failed_count else 0
