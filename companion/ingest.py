"""
Load a persona's backstory into its vector namespace.

Usage:
    companion-ingest <persona_id> <backstory.txt> [--name NAME]
        [--instructions FILE] [--seed FILE]

The backstory is split into paragraph chunks and indexed under the
persona's namespace. When --name and --instructions are given the
persona is also registered in the message store.
"""

import argparse
import asyncio
import logging
import re
import sys
from pathlib import Path

from .config import config
from .main import create_memory_from_config
from .memory import persona_namespace
from .messages import SQLiteMessageStore
from .models import Persona

logger = logging.getLogger("companion.ingest")


def split_paragraphs(text: str, max_chars: int = 2000) -> list[str]:
    """Split on blank lines, merging short paragraphs up to max_chars."""
    paragraphs = [p.strip() for p in re.split(r"\n\s*\n", text) if p.strip()]

    chunks: list[str] = []
    current = ""
    for paragraph in paragraphs:
        if current and len(current) + len(paragraph) + 2 > max_chars:
            chunks.append(current)
            current = paragraph
        else:
            current = f"{current}\n\n{paragraph}" if current else paragraph
    if current:
        chunks.append(current)
    return chunks


async def ingest_backstory(memory, persona_id: str, text: str) -> list[str]:
    """Index backstory chunks for a persona. Returns stored document IDs."""
    chunks = split_paragraphs(text)
    return await memory.add_persona_document(
        persona_namespace(persona_id),
        chunks,
        metadata={"persona_id": persona_id, "source": "backstory"},
        id_prefix=f"{persona_id}-backstory",
    )


async def run_ingest(args: argparse.Namespace) -> int:
    if args.name:
        if not args.instructions:
            logger.error("--instructions is required with --name")
            return 1
        store = SQLiteMessageStore(db_path=config.messages.db_path)
        store.save_persona(Persona(
            id=args.persona_id,
            name=args.name,
            instructions=Path(args.instructions).read_text(encoding="utf-8"),
            seed=Path(args.seed).read_text(encoding="utf-8") if args.seed else "",
        ))

    memory = await create_memory_from_config(config)
    try:
        text = Path(args.backstory).read_text(encoding="utf-8")
        ids = await ingest_backstory(memory, args.persona_id, text)
        logger.info(f"Indexed {len(ids)} chunks for persona {args.persona_id}")
    finally:
        await memory.close()
    return 0


def main():
    parser = argparse.ArgumentParser(description="Index a persona backstory")
    parser.add_argument("persona_id")
    parser.add_argument("backstory", help="Plain text file, paragraphs separated by blank lines")
    parser.add_argument("--name", help="Persona display name (registers the persona)")
    parser.add_argument("--instructions", help="File with the persona's core instructions")
    parser.add_argument("--seed", help="File with the opening dialogue used to seed new chats")
    args = parser.parse_args()

    config.setup_logging()
    sys.exit(asyncio.run(run_ingest(args)))


if __name__ == "__main__":
    main()
