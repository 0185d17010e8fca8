"""Tests for the bulk scan service."""

import json

import pytest

from core.domain.errors import NotFoundError, TransportFailureError
from core.domain.models import Citizen, RequestMetrics
from core.domain.rut import Rut
from core.interfaces.lookup import RutLookup
from core.services.bulk_scan import ScanHooks, ScanRequest, read_last_run, save_last_run, scan


class FakeLookup:
    """Finds every multiple of 10; RUN 15 fails with a network error."""

    def __init__(self):
        self.queried = []

    async def lookup(self, rut):
        parsed = Rut.parse(rut)
        self.queried.append(parsed.number)
        if parsed.number == 15:
            raise TransportFailureError("down")
        if parsed.number % 10:
            raise NotFoundError()
        citizen = Citizen(rut=parsed.formatted, run=parsed.body, name=f"PERSONA {parsed.body}")
        return citizen, RequestMetrics(total_count=len(self.queried), attempts=1)


def _request(tmp_path, **kwargs):
    defaults = dict(
        start=1,
        end=31,
        workers=3,
        output_dir=tmp_path / "output",
        index_file=tmp_path / "idx.txt",
        files_per_dir=20,
    )
    defaults.update(kwargs)
    return ScanRequest(**defaults)


class TestScan:
    @pytest.mark.asyncio
    async def test_scan_range(self, tmp_path):
        lookup = FakeLookup()
        found, errors = [], []
        hooks = ScanHooks(found=lambda c, m: found.append(c.rut), error=lambda r, e: errors.append(str(r)))

        result = await scan(client=lookup, request=_request(tmp_path), hooks=hooks)

        assert sorted(lookup.queried) == list(range(1, 31))
        assert result.found == 3
        assert result.errors == 1
        assert result.not_found == 26
        assert result.last_found_run == 30
        assert sorted(found) == sorted(str(Rut.from_number(n)) for n in (10, 20, 30))
        assert errors == [str(Rut.from_number(15))]
        assert read_last_run(tmp_path / "idx.txt") == 30

    @pytest.mark.asyncio
    async def test_output_is_sharded(self, tmp_path):
        await scan(client=FakeLookup(), request=_request(tmp_path))

        rut10 = Rut.from_number(10).formatted
        rut20 = Rut.from_number(20).formatted
        assert (tmp_path / "output" / "0" / f"{rut10}.json").exists()
        path = tmp_path / "output" / "1" / f"{rut20}.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["name"] == "PERSONA 20"
        assert data["run"] == "20"

    @pytest.mark.asyncio
    async def test_resume_from_index(self, tmp_path):
        save_last_run(tmp_path / "idx.txt", 25)
        lookup = FakeLookup()

        result = await scan(client=lookup, request=_request(tmp_path))

        assert result.start == 25
        assert sorted(lookup.queried) == list(range(25, 31))

    @pytest.mark.asyncio
    async def test_no_resume_ignores_index(self, tmp_path):
        save_last_run(tmp_path / "idx.txt", 25)
        lookup = FakeLookup()

        await scan(client=lookup, request=_request(tmp_path, resume=False, end=5))

        assert sorted(lookup.queried) == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_nothing_to_scan(self, tmp_path):
        save_last_run(tmp_path / "idx.txt", 40)
        lookup = FakeLookup()

        result = await scan(client=lookup, request=_request(tmp_path))

        assert lookup.queried == []
        assert result.found == 0

    @pytest.mark.asyncio
    async def test_invalid_range(self, tmp_path):
        with pytest.raises(ValueError):
            await scan(client=FakeLookup(), request=_request(tmp_path, start=0))

    def test_fake_satisfies_protocol(self):
        assert isinstance(FakeLookup(), RutLookup)


class TestIndexFile:
    def test_missing_index_is_zero(self, tmp_path):
        assert read_last_run(tmp_path / "missing.txt") == 0

    def test_corrupt_index(self, tmp_path):
        path = tmp_path / "idx.txt"
        path.write_text("abc", encoding="utf-8")
        with pytest.raises(ValueError):
            read_last_run(path)
