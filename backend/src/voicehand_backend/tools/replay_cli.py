from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any

from voicehand_backend.config import configure_logging
from voicehand_backend.hand.accounting import contributions_by_player, total_pot
from voicehand_backend.hand.models import HandDocument
from voicehand_backend.hand.validation import DocumentValidator
from voicehand_backend.interpreters.scripted import ScriptedInterpreter, TranscriptScript
from voicehand_backend.reconcile.loop import replay_transcript
from voicehand_backend.replay.models import Cursor
from voicehand_backend.replay.snapshot import calculate_snapshot, end_cursor


def parse_cursor(raw: str) -> Cursor:
    round_part, _, action_part = raw.partition(",")
    try:
        return Cursor(round_idx=int(round_part), action_idx=int(action_part or -1))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"cursor must look like ROUND,ACTION (got {raw!r})") from exc


async def run_script(
    script: TranscriptScript,
    *,
    cursor: Cursor | None = None,
    enforce_action_rotation: bool = True,
) -> dict[str, Any]:
    context = await replay_transcript(
        script.fragments,
        ScriptedInterpreter.from_script(script),
        document=HandDocument.new(**script.config),
        validator=DocumentValidator(enforce_action_rotation=enforce_action_rotation),
    )
    document = context.document
    target = cursor if cursor is not None else end_cursor(document)
    return {
        "document": document.to_ohh(),
        "document_hash": document.fingerprint(),
        "history": [
            {
                "sequence": entry.sequence,
                "fragment": entry.fragment,
                "status": entry.status.value,
                "error": entry.error.code if entry.error is not None else None,
            }
            for entry in context.history
        ],
        "snapshot": calculate_snapshot(document, target).model_dump(mode="json", by_alias=True),
        "contributions": {str(player_id): amount for player_id, amount in contributions_by_player(document).items()},
        "total_pot": total_pot(document),
    }


async def _run(path: Path, cursor: Cursor | None, enforce_action_rotation: bool) -> None:
    script = TranscriptScript.load(path)
    result = await run_script(script, cursor=cursor, enforce_action_rotation=enforce_action_rotation)
    print(json.dumps(result, indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay a recorded transcript script into a hand document")
    parser.add_argument("transcript_file", type=Path)
    parser.add_argument("--cursor", type=parse_cursor, default=None, help="snapshot position as ROUND,ACTION")
    parser.add_argument("--no-rotation", action="store_true", help="skip the clockwise action order check")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    configure_logging(args.log_level.upper())
    asyncio.run(_run(args.transcript_file, args.cursor, not args.no_rotation))


if __name__ == "__main__":
    main()
