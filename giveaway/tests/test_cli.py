import json
from pathlib import Path

from typer.testing import CliRunner

from giveaway.cli import app
from giveaway.commit_reveal.commit import commit
from giveaway.commit_reveal.select import verify_transcript
from giveaway.types.core import AuditTranscript, GiveawayResult

runner = CliRunner()


def run_cli(args: list[str], expect: int = 0) -> str:
    result = runner.invoke(app, args)
    assert result.exit_code == expect, result.output
    return result.stdout


def draw(tmp_path: Path, *extra: str) -> dict:
    entrants = tmp_path / "entrants.txt"
    entrants.write_text("alice\n\n  bob  \ncarol\n", encoding="utf-8")
    out = run_cli(
        [
            "draw",
            str(entrants),
            "--peers",
            "2",
            "--commit-window",
            "0.1",
            "--reveal-window",
            "0.1",
            "--log-level",
            "ERROR",
            *extra,
        ]
    )
    return json.loads(out)


def test_commit_prints_hash_of_given_secret():
    data = json.loads(run_cli(["commit", "--secret", "hunter2"]))
    assert data == {"secret": "hunter2", "commitment": commit("hunter2")}


def test_commit_generates_secret_when_omitted():
    data = json.loads(run_cli(["commit"]))
    assert data["commitment"] == commit(data["secret"])


def test_draw_outputs_verifiable_result(tmp_path: Path):
    data = draw(tmp_path)
    result = GiveawayResult.from_dict(data["result"])
    transcript = AuditTranscript.from_dict(data["transcript"])
    assert result.participants == ("alice", "bob", "carol")
    assert result.winner in result.participants
    assert transcript.organizer_id == "organizer"
    assert {c.sender_id for c in transcript.commitments} == {"organizer", "peer-1", "peer-2"}
    assert len(transcript.valid_reveals) == 3
    assert verify_transcript(result, transcript)


def test_verify_accepts_draw_output_and_rejects_tampering(tmp_path: Path):
    data = draw(tmp_path)
    good = tmp_path / "draw.json"
    good.write_text(json.dumps(data), encoding="utf-8")
    verdict = json.loads(run_cli(["verify", str(good)]))
    assert verdict["valid"] is True and verdict["mode"] == "transcript"

    # result-only check needs the organizer id
    result_only = tmp_path / "result.json"
    result_only.write_text(json.dumps(data["result"]), encoding="utf-8")
    run_cli(["verify", str(result_only)], expect=1)
    verdict = json.loads(run_cli(["verify", str(result_only), "--organizer", "organizer"]))
    assert verdict == {"valid": True, "mode": "result", "winner": data["result"]["winner"]}

    participants = data["result"]["participants"]
    data["result"]["winner"] = next(p for p in participants if p != data["result"]["winner"])
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps(data), encoding="utf-8")
    run_cli(["verify", str(bad)], expect=1)


def test_verify_rejects_malformed_input(tmp_path: Path):
    f = tmp_path / "junk.json"
    f.write_text(json.dumps({"winner": "a"}), encoding="utf-8")
    run_cli(["verify", str(f), "--organizer", "o"], expect=1)


def test_draw_archives_and_history_lists(tmp_path: Path):
    db = tmp_path / "draws.db"
    data = draw(tmp_path, "--archive", str(db))
    rows = json.loads(run_cli(["history", "--archive", str(db)]))
    assert len(rows) == 1
    assert rows[0]["verificationHash"] == data["result"]["verificationHash"]
    assert rows[0]["organizerId"] == "organizer"


def test_draw_with_empty_participants_fails(tmp_path: Path):
    entrants = tmp_path / "none.txt"
    entrants.write_text("\n\n", encoding="utf-8")
    result = runner.invoke(app, ["draw", str(entrants)])
    assert result.exit_code != 0
