#!/usr/bin/env python3
"""
Tests for signature pagination and the analysis window.

Tests:
1. Pagination stops on a short page or an empty page
2. The before cursor is the oldest signature of the previous page
3. Overlapping pages do not produce duplicate records
4. Window filter keeps only error-free records within 1800s of the oldest
5. Rate-limit exhaustion aborts the whole fetch
"""
import asyncio
import dataclasses

import httpx
import pytest

from buyerspread.core.errors import RetriesExhausted
from buyerspread.ingestion.history import HistoryFetcher
from buyerspread.ingestion.models import SignatureRecord


def sig(name, block_time, err=None):
    return {"signature": name, "blockTime": block_time, "err": err, "slot": 1, "memo": None}


def paged(pages):
    """Serve the pages in request order, then empty pages."""
    served = iter(pages)

    def handler(params):
        return next(served, [])
    return handler


@pytest.fixture
def small_pages(config):
    return dataclasses.replace(config, page_size=3)


def test_pagination_stops_on_short_page(small_pages, make_rpc, rpc_server, sleeps):
    rpc_server.handlers["getSignaturesForAddress"] = paged([
        [sig("s9", 900), sig("s8", 800), sig("s7", 700)],
        [sig("s6", 600), sig("s5", 500), sig("s4", 400)],
        [sig("s3", 300)],
    ])
    fetcher = HistoryFetcher(make_rpc(small_pages), small_pages, sleep=sleeps)

    records = asyncio.run(fetcher.fetch_all_signatures("MINT"))

    assert [r.signature for r in records] == ["s9", "s8", "s7", "s6", "s5", "s4", "s3"]
    calls = rpc_server.calls_to("getSignaturesForAddress")
    assert len(calls) == 3
    assert calls[0] == ["MINT", {"limit": 3}]
    assert calls[1][1]["before"] == "s7"
    assert calls[2][1]["before"] == "s4"
    assert sleeps.calls == [1.0, 1.0]


def test_pagination_stops_on_empty_page(small_pages, make_rpc, rpc_server, sleeps):
    rpc_server.handlers["getSignaturesForAddress"] = paged([
        [sig("s3", 300), sig("s2", 200), sig("s1", 100)],
        [],
    ])
    fetcher = HistoryFetcher(make_rpc(small_pages), small_pages, sleep=sleeps)

    records = asyncio.run(fetcher.fetch_all_signatures("MINT"))

    assert len(records) == 3
    assert len(rpc_server.calls) == 2


def test_no_duplicates_from_overlapping_pages(small_pages, make_rpc, rpc_server, sleeps):
    rpc_server.handlers["getSignaturesForAddress"] = paged([
        [sig("s5", 500), sig("s4", 400), sig("s3", 300)],
        [sig("s3", 300), sig("s2", 200)],
    ])
    fetcher = HistoryFetcher(make_rpc(small_pages), small_pages, sleep=sleeps)

    records = asyncio.run(fetcher.fetch_all_signatures("MINT"))

    assert [r.signature for r in records] == ["s5", "s4", "s3", "s2"]


def test_window_filter_bounds_and_errors(config, make_rpc):
    fetcher = HistoryFetcher(make_rpc(config), config)
    start = 1_700_000_000
    records = [
        SignatureRecord("late", start + 1801),
        SignatureRecord("edge", start + 1800),
        SignatureRecord("failed", start + 60, err={"InstructionError": [0, "Custom"]}),
        SignatureRecord("ok", start + 60),
        SignatureRecord("untimed", None),
        SignatureRecord("first", start),
    ]

    kept = fetcher.filter_window(records)

    assert [r.signature for r in kept] == ["edge", "ok", "first"]
    for r in kept:
        assert start <= r.block_time <= start + 1800
        assert r.err is None


def test_window_filter_empty(config, make_rpc):
    fetcher = HistoryFetcher(make_rpc(config), config)
    assert fetcher.filter_window([]) == []


def test_rate_limit_exhaustion_is_fatal(small_pages, make_rpc, rpc_server, sleeps):
    rpc_server.handlers["getSignaturesForAddress"] = lambda params: httpx.Response(429)
    fetcher = HistoryFetcher(make_rpc(small_pages), small_pages, sleep=sleeps)

    with pytest.raises(RetriesExhausted):
        asyncio.run(fetcher.fetch_window("MINT"))
