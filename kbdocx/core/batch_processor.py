"""
Handles the parallel processing of a batch of HTML files.
This class contains the ProcessPoolExecutor used by the CLI.
"""
import concurrent.futures
import logging
import os
from pathlib import Path
from typing import Callable

from .pipeline import ExportPipeline
from ..utils.config import ConversionConfig
from ..utils.logger import capture_worker_logs

# The main logger is configured by the entry point (CLI)
log = logging.getLogger("kbdocx")

WorkerResult = tuple[Path, Path | None, str, Exception | None]


def _convert_single_file(path: Path, config: ConversionConfig) -> WorkerResult:
    """
    Target for the executor. Runs the export pipeline on a single file
    and captures all its log output.

    Returns:
        tuple[Path, Path | None, str, Exception | None]:
            - The path of the processed file.
            - The path of the written .docx, None on failure.
            - The captured log output as a string.
            - An exception object if one occurred, else None.
    """
    with capture_worker_logs() as log_stream:
        try:
            log.info(f"Converting: {path.name}")
            output = ExportPipeline(config).convert_file(path)
            log.info(f"Successfully finished conversion for: {path.name}")
            return path, output, log_stream.getvalue(), None

        except Exception as e:
            log.error(f"Failed conversion for: {path.name}", exc_info=True)
            # Exceptions cross the process boundary as plain RuntimeErrors
            safe_exc = RuntimeError(f"{type(e).__name__}: {e}")
            return path, None, log_stream.getvalue(), safe_exc


class BatchProcessor:
    """Orchestrates the conversion of multiple files in parallel."""

    def __init__(self, config: ConversionConfig):
        self.config = config


    def run(self, files: list[Path], progress_callback: Callable | None = None) -> list[WorkerResult]:
        """
        Processes a list of files in parallel using a ProcessPoolExecutor.

        Args:
            files: A list of .html paths to convert.
            progress_callback: Called as each file completes with
                               (path, output path or None, exception or None).
        Returns:
            Worker results in the original file order.
        """
        th = self.config.num_threads
        max_workers = th if th > 0 else (os.cpu_count() or 1)
        max_workers = min(max_workers, max(len(files), 1))
        log.info(f"Starting batch processing with up to {max_workers} worker(s).")

        path_to_index = {path: i for i, path in enumerate(files)}
        ordered_results: list[WorkerResult | None] = [None] * len(files)

        with concurrent.futures.ProcessPoolExecutor(max_workers) as executor:
            future_to_path = {
                executor.submit(_convert_single_file, path, self.config): path
                for path in files
            }

            for future in concurrent.futures.as_completed(future_to_path):
                path = future_to_path[future]
                idx = path_to_index[path]

                try:
                    result = future.result()
                except Exception as e:
                    # The worker itself died
                    log.error(f"Critical worker failure for {path.name}: {e}", exc_info=True)
                    result = (path, None, f"CRITICAL FAILURE: {e}\n", e)

                ordered_results[idx] = result
                if progress_callback:
                    _, output, _, exc = result
                    progress_callback(path, output, exc)

        log.info("Batch processing complete. Writing ordered logs...")
        self._write_worker_logs(ordered_results)
        return [r for r in ordered_results if r is not None]


    @staticmethod
    def _write_worker_logs(results: list[WorkerResult | None]):
        """Appends each worker's buffered log to the main log file, in input order."""
        file_handler = next(
            (h for h in log.handlers if isinstance(h, logging.FileHandler)), None
        )
        if file_handler is None:
            return

        for result in results:
            if result is None:
                log.error("Missing result in ordered list.")
                continue
            path, _, log_string, _ = result
            if not log_string:
                continue
            file_handler.stream.write(f"\n--- Log for {path.name} ---\n")
            file_handler.stream.write(log_string)
            file_handler.stream.write(f"--- End log for {path.name} ---\n")
        file_handler.flush()
