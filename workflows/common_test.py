"""Tests for job plumbing and the file-only jobs."""

import argparse
import json
from unittest.mock import patch

import httpx
import pytest

from lib.settings import InputError
from lib.tabular.codec import read_table
from workflows import combine_csvs, validate_booking_urls
from workflows.common import load_table, run_job


def job_args(**kw):
    return argparse.Namespace(verbose=False, log_dir=None, notify=False, **kw)


class TestRunJob:

    def test_success_returns_zero_and_notifies(self):
        async def body(settings):
            return "done=1"

        with patch("workflows.common.send_run_summary") as mock_send:
            args = argparse.Namespace(verbose=False, log_dir=None, notify=True)
            assert run_job("job", args, body) == 0
        mock_send.assert_called_once_with("job", "done=1")

    def test_batch_fatal_error_returns_one(self):
        async def body(settings):
            raise InputError("Missing \"Booking URL\" column")

        assert run_job("job", job_args(), body) == 1

    def test_missing_store_config_returns_one(self, monkeypatch):
        for name in ("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"):
            monkeypatch.delenv(name, raising=False)

        async def body(settings):
            return "never"

        assert run_job("job", job_args(), body, needs_store=True) == 1


def test_load_table_missing_file(tmp_path):
    with pytest.raises(InputError):
        load_table(str(tmp_path / "nope.csv"))


def test_combine_csvs(tmp_path):
    a = tmp_path / "a.csv"
    b = tmp_path / "b.csv"
    a.write_text("Venue Name,Address,Suburb/City,Booking URL\nZed,1 St,Perth,https://z.example/book\n")
    b.write_text("Name,Address,City,Booking Link\nAlpha,2 St,Adelaide,https://a.example\nZed again,3 St,Perth,http://z.example/book/\n")
    out = tmp_path / "combined.csv"

    assert combine_csvs.main([str(out), str(a), str(b)]) == 0

    table = read_table(out)
    assert table.header[0] == "Venue Name"
    assert [r[0] for r in table.rows] == ["Alpha", "Zed"]


def test_validate_booking_urls_writes_outputs(tmp_path):
    src = tmp_path / "venues.csv"
    src.write_text("Venue Name,Booking URL\nA,https://ok.example/book\nB,https://dead.example/x\n")

    def handler(request):
        return httpx.Response(404 if request.url.host == "dead.example" else 200)

    def client():
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    with patch("workflows.validate_booking_urls.make_client", side_effect=client):
        assert validate_booking_urls.main([str(src)]) == 0
        assert validate_booking_urls.main([str(src)]) == 0

    validated = read_table(tmp_path / "venues-validated.csv")
    assert validated.header == ["Venue Name", "Booking URL", "Booking URL Changed"]

    reports = sorted(tmp_path.glob("venues-validate-report-*.json"))
    assert len(reports) == 2
    assert all(json.loads(p.read_text())["failedCount"] == 1 for p in reports)


def test_validate_booking_urls_requires_input():
    assert validate_booking_urls.main([]) == 1
