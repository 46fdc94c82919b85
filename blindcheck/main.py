import argparse
import asyncio
import json
import sys
from pathlib import Path

from blindcheck.batch.coordinator import BatchCoordinator
from blindcheck.config.settings import Settings
from blindcheck.logging.logger import Log
from blindcheck.processor.exceptions import FileReadError
from blindcheck.processor.file_loader import FileLoader
from blindcheck.processor.models import AnalysisResult, SourceFile
from blindcheck.processor.processor import build_processor


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blindcheck",
        description="Report metadata and content that could identify a document's author.",
    )
    parser.add_argument("files", nargs="+", type=Path, help="Documents to inspect")
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation (default: 2)")
    return parser


async def analyse_paths(paths: list[Path], settings: Settings) -> list[AnalysisResult]:
    """Load, analyse and return one result per path, in order."""
    loader = FileLoader()
    coordinator = BatchCoordinator.from_settings(build_processor(settings), settings)

    sources: list[SourceFile] = []
    unreadable: dict[int, AnalysisResult] = {}
    for index, path in enumerate(paths):
        try:
            sources.append(loader.load(path))
        except FileReadError as exc:
            Log.warning(str(exc))
            unreadable[index] = AnalysisResult.error_result(path.name, str(exc))

    analysed = iter(await coordinator.run(sources))
    return [unreadable[i] if i in unreadable else next(analysed) for i in range(len(paths))]


def main(argv: list[str] | None = None) -> int:
    """Entry point: settings -> logging -> processor -> batch -> JSON on stdout."""
    args = create_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    try:
        results = asyncio.run(analyse_paths(args.files, settings))
    except KeyboardInterrupt:
        Log.info("Interrupted")
        return 130

    json.dump([r.to_dict() for r in results], sys.stdout, indent=args.indent, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
