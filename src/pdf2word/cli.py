import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path

from .config import Settings
from .conversion import (
    STATUS_LABELS,
    CandidateFile,
    ConversionFailure,
    ConversionGateway,
    ConversionStatus,
    DirectorySaver,
    RequestsConversionGateway,
    SessionController,
    SessionState,
    TransportError,
    classify,
)
from .logging_config import setup_logging


def _print_error(state: SessionState) -> None:
    err = state.last_error
    if err is not None:
        print(f"{err.title}: {err.message}", file=sys.stderr)


async def convert(
    path: Path,
    gateway: ConversionGateway,
    output_dir: Path,
    *,
    poll_interval: float,
) -> int:
    controller = SessionController(gateway, DirectorySaver(output_dir), poll_interval=poll_interval)
    last_status: list[str | None] = [None]

    def report(state: SessionState) -> None:
        job = state.active_job
        if state.is_uploading:
            print(f"\rUploading {state.file_name}: {state.upload_progress:3d}%", end="", flush=True)
        elif job is not None and job.status != last_status[0]:
            if last_status[0] is None:
                print()
            last_status[0] = job.status
            print(STATUS_LABELS[job.status][0])

    controller.subscribe(report)
    with controller:
        try:
            candidate = CandidateFile.from_path(path)
        except OSError as e:
            print(f"Cannot read {path}: {e}", file=sys.stderr)
            return 1
        if not await controller.start(candidate):
            _print_error(controller.state)
            return 1
        await controller.wait()

        state = controller.state
        if state.last_error is not None:
            _print_error(state)
            return 1
        if state.active_job is None or state.active_job.status == ConversionStatus.FAILED:
            print(controller.failure_explanation, file=sys.stderr)
            return 1
        try:
            saved = await controller.download()
        except ConversionFailure as e:
            print(f"{e.error.title}: {e.error.message}", file=sys.stderr)
            return 1
        print(f"Saved {saved}")
        return 0


async def list_jobs(gateway: ConversionGateway, skip: int, limit: int) -> int:
    try:
        jobs = await asyncio.to_thread(gateway.list_conversions, skip, limit)
    except TransportError as e:
        err = classify(e)
        print(f"{err.title}: {err.message}", file=sys.stderr)
        return 1
    for job in jobs:
        created = job.created_at.isoformat() if job.created_at else "-"
        print(f"{job.id}\t{job.status}\t{created}\t{job.original_file_name}")
    return 0


async def delete_job(gateway: ConversionGateway, conversion_id: str) -> int:
    try:
        await asyncio.to_thread(gateway.delete_conversion, conversion_id)
    except TransportError as e:
        err = classify(e)
        print(f"{err.title}: {err.message}", file=sys.stderr)
        return 1
    print(f"Deleted {conversion_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pdf2word", description="Convert PDF files to Word documents.")
    parser.add_argument("--api-base", help="conversion service URL (default: $PDF2WORD_API_BASE)")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_convert = sub.add_parser("convert", help="upload a PDF and download the .docx")
    p_convert.add_argument("file", type=Path)
    p_convert.add_argument("-o", "--output-dir", type=Path, default=Path("."))

    p_list = sub.add_parser("list", help="list recent conversions")
    p_list.add_argument("--skip", type=int, default=0)
    p_list.add_argument("--limit", type=int, default=50)

    p_delete = sub.add_parser("delete", help="delete a conversion")
    p_delete.add_argument("id")
    return parser


def main(argv: list[str] | None = None, *, gateway: ConversionGateway | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    if args.api_base:
        settings = replace(settings, api_base=args.api_base.rstrip("/"))
    setup_logging("DEBUG" if args.verbose else "WARNING")

    if gateway is None:
        gateway = RequestsConversionGateway(
            settings.api_base,
            upload_timeout=settings.upload_timeout,
            request_timeout=settings.request_timeout,
        )

    if args.command == "convert":
        return asyncio.run(convert(args.file, gateway, args.output_dir, poll_interval=settings.poll_interval))
    if args.command == "list":
        return asyncio.run(list_jobs(gateway, args.skip, args.limit))
    return asyncio.run(delete_job(gateway, args.id))


if __name__ == "__main__":
    sys.exit(main())
