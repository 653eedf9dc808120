"""
ResumeFit - Main Entry Point

Example usage:
    # Start the HTTP service the browser extension talks to
    python -m resumefit.pipeline serve --port 3001

    # Analyze a resume against a job description from files
    python -m resumefit.pipeline analyze --resume resume.txt --job job.txt

    # Show how a document is split into section chunks
    python -m resumefit.pipeline chunk resume.txt --type resume
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from . import config
from .logging_config import configure_logging


def serve(host: str = config.HOST, port: int = config.PORT, reload: bool = False) -> None:
    """Start the FastAPI service.

    Args:
        host: Interface to bind.
        port: Port to run on.
        reload: Enable auto-reload for development.
    """
    import uvicorn

    print(f"Starting ResumeFit AI service on http://{host}:{port}")
    uvicorn.run(
        "resumefit.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


async def _analyze(resume_text: str, job_text: str) -> dict:
    from .service import build_service

    service = build_service()
    try:
        await service.store.heartbeat()
        result = await service.analyze(resume_text, job_text)
    finally:
        await service.shutdown()
    return result.model_dump()


def analyze(resume_path: str, job_path: str, output: str = None) -> None:
    """Run one analysis and print (or write) the result as JSON."""
    resume_text = Path(resume_path).read_text(encoding="utf-8")
    job_text = Path(job_path).read_text(encoding="utf-8")

    result = asyncio.run(_analyze(resume_text, job_text))
    payload = json.dumps(result, indent=2, ensure_ascii=False)

    if output:
        Path(output).write_text(payload, encoding="utf-8")
        print(f"Analysis written to {output} (score {result['score']}, {len(result['suggested_edits'])} edits)")
    else:
        print(payload)


def chunk(path: str, source_type: str = "resume") -> None:
    """Print the section chunks of a document."""
    from .nlp.chunker import chunk_job_description, chunk_resume

    text = Path(path).read_text(encoding="utf-8")
    chunks = chunk_resume(text) if source_type == "resume" else chunk_job_description(text)
    for ch in chunks:
        print(f"[{ch.sequence_index:>3}] {ch.section:<16} {len(ch.text):>4} chars | {ch.text[:80]}")
    print(f"\n{len(chunks)} chunks")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="ResumeFit - resume to job description alignment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m resumefit.pipeline serve
  python -m resumefit.pipeline analyze --resume resume.txt --job job.txt -o result.json
  python -m resumefit.pipeline chunk job.txt --type job
        """,
    )
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", type=str, default=config.HOST, help=f"Host (default: {config.HOST})")
    serve_parser.add_argument("--port", "-p", type=int, default=config.PORT, help=f"Port (default: {config.PORT})")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze a resume against a job description")
    analyze_parser.add_argument("--resume", "-r", type=str, required=True, help="Path to resume text file")
    analyze_parser.add_argument("--job", "-j", type=str, required=True, help="Path to job description text file")
    analyze_parser.add_argument("--output", "-o", type=str, default=None, help="Write JSON result to this file")

    chunk_parser = subparsers.add_parser("chunk", help="Show section chunks of a document")
    chunk_parser.add_argument("path", type=str, help="Path to text file")
    chunk_parser.add_argument("--type", "-t", choices=["resume", "job"], default="resume", help="Document type")

    args = parser.parse_args()
    configure_logging(args.log_level)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        if args.command == "serve":
            serve(host=args.host, port=args.port, reload=args.reload)
        elif args.command == "analyze":
            analyze(args.resume, args.job, output=args.output)
        elif args.command == "chunk":
            chunk(args.path, source_type=args.type)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
