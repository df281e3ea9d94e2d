"""
Jyotish Agent - Command Line Entry Point
========================================

Commands:
    jyotish-agent ask "When will I get married?" --profile asha.json [--chart chart.json]
    jyotish-agent index [--force books/bphs.pdf]
    jyotish-agent status

`ask` prints {"answer", "toolsUsed", "status"} as JSON. `index` runs one
incremental indexing pass over the books directory, or re-uploads one
book with --force. `status` prints the tracked index handle and books.

Exit codes:
    0  success
    1  any other failure (service, model, indexing, configuration)
    2  invalid request (missing message or birth data)

Run with:
    python -m jyotish_agent.main ask ...

Or after installing:
    jyotish-agent ask ...
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from jyotish_agent.errors import AgentError, IndexingError, RequestValidationError
from jyotish_agent.utils.config import get_config, load_retrieval_config
from jyotish_agent.utils.logger import Logger

main_logger = Logger("Main")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_REQUEST = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jyotish-agent",
        description="Vedic astrology question answering over calculation tools and indexed books",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    ask = commands.add_parser("ask", help="Answer one question")
    ask.add_argument("message", help="The question to answer")
    ask.add_argument(
        "--profile",
        required=True,
        type=Path,
        help="JSON file with name, date, time, location {lat, lon, name}, timezone, locale",
    )
    ask.add_argument("--chart", type=Path, help="JSON file with a precomputed birth chart")
    ask.add_argument("--timeout", type=float, help="Deadline for the whole request in seconds")

    index = commands.add_parser("index", help="Upload new or changed books to the book index")
    index.add_argument(
        "--force",
        type=Path,
        metavar="BOOK",
        help="Re-upload this book even if it is already indexed",
    )
    commands.add_parser("status", help="Show the book index handle and indexed books")

    return parser


def _read_json(path: Path) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return data


def _print_json(data: dict) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


async def _ask(args: argparse.Namespace) -> int:
    from jyotish_agent.agent import Agent

    request = {
        "message": args.message,
        "userData": _read_json(args.profile),
        "chartData": _read_json(args.chart) if args.chart else None,
    }

    agent = Agent.from_config()
    try:
        result = await agent.process_request(request, timeout=args.timeout)
    finally:
        await agent.aclose()

    print(result.to_json())
    return EXIT_OK


async def _index(args: argparse.Namespace) -> int:
    from openai import AsyncOpenAI

    from jyotish_agent.rag import RetrievalStore

    config = get_config()
    client = AsyncOpenAI(api_key=config.openai.api_key, timeout=config.openai.timeout_seconds)
    try:
        store = RetrievalStore.from_config(config, client)
        if args.force:
            document = await store.force_index(args.force)
            output = {"reindexed": document.to_dict()}
        else:
            output = (await store.index_books()).to_dict()
    finally:
        await client.close()

    _print_json(output)
    return EXIT_OK


async def _status(args: argparse.Namespace) -> int:
    from jyotish_agent.rag import IndexTracker

    retrieval = load_retrieval_config()
    state = IndexTracker(retrieval.tracker_file).read()
    _print_json({
        "hasStore": bool(state.store_handle),
        "storeHandle": state.store_handle,
        "booksDir": str(retrieval.books_dir),
        "indexedBooks": [doc.to_dict() for doc in state.documents],
    })
    return EXIT_OK


COMMANDS = {
    "ask": _ask,
    "index": _index,
    "status": _status,
}


def main(argv: list[str] | None = None) -> int:
    """
    Parse arguments, run the command and return the exit code.

    Args:
        argv: Arguments without the program name (default sys.argv[1:])
    """
    args = build_parser().parse_args(argv)

    try:
        return asyncio.run(COMMANDS[args.command](args))
    except RequestValidationError as e:
        main_logger.error(f"Invalid request ({e.field}): {e}")
        return EXIT_INVALID_REQUEST
    except (AgentError, IndexingError) as e:
        main_logger.error(f"{args.command} failed", e)
        return EXIT_FAILURE
    except (OSError, ValueError) as e:
        main_logger.error(f"{args.command} failed", e)
        return EXIT_FAILURE


def run():
    """
    Synchronous entry point.

    This is called when running with the `jyotish-agent` command.
    """
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
