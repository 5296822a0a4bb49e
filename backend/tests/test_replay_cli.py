from __future__ import annotations

import argparse
import json
import sys

import pytest

from voicehand_backend.interpreters.scripted import TranscriptScript
from voicehand_backend.replay.models import Cursor
from voicehand_backend.tools import replay_cli

from test_utils import TRANSCRIPT_PATH


@pytest.mark.asyncio
async def test_run_script_summarises_the_hand(transcript: TranscriptScript) -> None:
    result = await replay_cli.run_script(transcript)

    assert [row["status"] for row in result["history"]] == ["committed"] * len(transcript.steps)
    assert result["document"]["ohh"]["table_name"] == "Home Game"
    assert result["contributions"] == {"1": 55, "2": 25, "3": 1}
    assert result["total_pot"] == 81
    assert result["snapshot"]["hand_complete"]


@pytest.mark.asyncio
async def test_run_script_at_cursor(transcript: TranscriptScript) -> None:
    result = await replay_cli.run_script(transcript, cursor=Cursor(round_idx=1, action_idx=-1))
    assert result["snapshot"]["pot"] == 31
    assert result["snapshot"]["community_cards"] == ["Ah", "7c", "2d"]


def test_parse_cursor() -> None:
    assert replay_cli.parse_cursor("2,1") == Cursor(round_idx=2, action_idx=1)
    assert replay_cli.parse_cursor("1") == Cursor(round_idx=1, action_idx=-1)
    with pytest.raises(argparse.ArgumentTypeError):
        replay_cli.parse_cursor("flop")


def test_main_prints_json(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr(sys, "argv", ["voicehand-replay", str(TRANSCRIPT_PATH), "--cursor", "0,2"])
    replay_cli.main()
    output = json.loads(capsys.readouterr().out)
    assert output["snapshot"]["cursor"] == {"roundIdx": 0, "actionIdx": 2}
    assert output["document_hash"]
