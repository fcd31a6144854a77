import io
import json
import threading

import httpx
import pytest

from receiptscan import cli
from receiptscan.receipt.base import Expense
from receiptscan.receipt.errors import WrongFunctionError
from receiptscan.receipt.extractor import FunctionCallExtractor
from receiptscan.receipt.gemini_provider import GeminiModel
from receiptscan.receipt.retry import RetryPolicy
from receiptscan.receipt.schema import function_declaration
from tests.conftest import VALID_ARGS


class FakeExtractor:
    def __init__(self, fail_on=(), on_call=None):
        self.fail_on = set(fail_on)
        self.on_call = on_call
        self.seen = []

    def extract(self, image_bytes, content_type, filename=None):
        self.seen.append((filename, content_type))
        if self.on_call:
            self.on_call(filename)
        if filename in self.fail_on:
            raise WrongFunctionError("addReceipt", "other")
        return Expense(filename=filename, **VALID_ARGS)


@pytest.fixture
def receipts_dir(tmp_path):
    for name in ("b.jpg", "a.jpg", "c.png"):
        (tmp_path / name).write_bytes(b"\xff\xd8" + name.encode())
    (tmp_path / "nested").mkdir()
    return tmp_path


def test_one_line_per_file_in_name_order(receipts_dir):
    out = io.StringIO()
    extractor = FakeExtractor()

    ok = cli.process_directory(str(receipts_dir), extractor, out=out)

    lines = [json.loads(line) for line in out.getvalue().splitlines()]
    assert [line["filename"] for line in lines] == ["a.jpg", "b.jpg", "c.png"]
    assert lines[0] == {"filename": "a.jpg", **VALID_ARGS}
    assert ok == 3
    assert ("c.png", "image/png") in extractor.seen


def test_failed_file_prints_null_and_continues(receipts_dir):
    out = io.StringIO()

    ok = cli.process_directory(str(receipts_dir), FakeExtractor(fail_on={"b.jpg"}), out=out)

    assert out.getvalue().splitlines()[1] == "null"
    assert json.loads(out.getvalue().splitlines()[2])["filename"] == "c.png"
    assert ok == 2


def test_cancel_before_start_processes_nothing(receipts_dir):
    out = io.StringIO()
    cancel = threading.Event()
    cancel.set()
    extractor = FakeExtractor()

    cli.process_directory(str(receipts_dir), extractor, cancel, out=out)

    assert out.getvalue() == ""
    assert extractor.seen == []


def test_cancel_stops_before_next_file(receipts_dir):
    out = io.StringIO()
    cancel = threading.Event()
    extractor = FakeExtractor(on_call=lambda filename: cancel.set())

    cli.process_directory(str(receipts_dir), extractor, cancel, out=out)

    # the in-flight file finishes, nothing after it starts
    assert [name for name, _ in extractor.seen] == ["a.jpg"]
    assert len(out.getvalue().splitlines()) == 1


def test_missing_directory_raises(tmp_path):
    with pytest.raises(OSError):
        cli.process_directory(str(tmp_path / "nope"), FakeExtractor(), out=io.StringIO())


def test_main_prints_results(receipts_dir, monkeypatch, capsys):
    captured = {}

    def fake_factory(settings):
        captured["settings"] = settings
        return FakeExtractor()

    monkeypatch.setenv("API_KEY", "k")
    monkeypatch.setattr(cli, "get_receipt_extractor", fake_factory)

    assert cli.main([str(receipts_dir), "--max-attempts", "3"]) == 0

    assert len(capsys.readouterr().out.splitlines()) == 3
    assert captured["settings"].max_attempts == 3


def test_main_without_api_key(receipts_dir, monkeypatch):
    monkeypatch.delenv("API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    assert cli.main([str(receipts_dir)]) == 2


def test_main_with_unreadable_directory(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "get_receipt_extractor", lambda settings: FakeExtractor())

    assert cli.main([str(tmp_path / "nope")]) == 2


def _gemini_extractor(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    model = GeminiModel("k", function=function_declaration(), base_url="https://gemini.test/v1beta", client=client)
    return FunctionCallExtractor(model, RetryPolicy(max_attempts=1))


@pytest.mark.parametrize(
    "reply",
    [
        {"text": "<html>proxy</html>"},
        {"json": {"candidates": [None]}},
        {"json": {"candidates": [{"content": {"parts": [{"functionCall": {"name": "addReceipt", "args": ["date"]}}]}}]}},
    ],
)
def test_malformed_gemini_reply_prints_null_and_continues(reply, tmp_path):
    for name in ("a.jpg", "b.jpg"):
        (tmp_path / name).write_bytes(b"\xff\xd8")
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, **reply)

    out = io.StringIO()
    ok = cli.process_directory(str(tmp_path), _gemini_extractor(handler), out=out)

    assert out.getvalue().splitlines() == ["null", "null"]
    assert len(calls) == 2
    assert ok == 0


def test_bad_reply_does_not_stop_next_file(tmp_path):
    for name in ("a.jpg", "b.jpg"):
        (tmp_path / name).write_bytes(b"\xff\xd8")
    replies = [
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"candidates": [{"content": {"parts": [{"functionCall": {"name": "addReceipt", "args": VALID_ARGS}}]}}]}),
    ]

    out = io.StringIO()
    cli.process_directory(str(tmp_path), _gemini_extractor(lambda request: replies.pop(0)), out=out)

    lines = out.getvalue().splitlines()
    assert lines[0] == "null"
    assert json.loads(lines[1]) == {"filename": "b.jpg", **VALID_ARGS}


def test_main_with_invalid_log_level(receipts_dir, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    monkeypatch.setattr(cli, "get_receipt_extractor", lambda settings: FakeExtractor())

    assert cli.main([str(receipts_dir)]) == 2
