"""
LeadDesk - Durable log tests
Append / read / rewrite on real files in a temporary directory.
"""

import json

import pytest

from services.durable_log import DurableLog, serialize_record
from services.errors import StorageError, StorageFatalError


class TestReadAll:

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        log = DurableLog(tmp_path)
        assert await log.read_all("leads") == []

    @pytest.mark.asyncio
    async def test_blank_lines_are_ignored(self, tmp_path):
        (tmp_path / "leads.jsonl").write_text('{"id":1}\n\n   \n{"id":2}\n', encoding="utf-8")
        log = DurableLog(tmp_path)
        assert await log.read_all("leads") == ['{"id":1}', '{"id":2}']

    @pytest.mark.asyncio
    async def test_unreadable_file_is_fatal(self, tmp_path):
        # A directory where the file should be
        (tmp_path / "users.jsonl").mkdir()
        log = DurableLog(tmp_path)
        with pytest.raises(StorageFatalError):
            await log.read_all("users")


class TestAppend:

    @pytest.mark.asyncio
    async def test_append_keeps_write_order(self, tmp_path):
        log = DurableLog(tmp_path)
        for i in range(1, 4):
            await log.append("proposals", {"id": i, "company_name": f"Empresa {i}"})

        lines = await log.read_all("proposals")
        assert [json.loads(l)["id"] for l in lines] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_one_record_per_line(self, tmp_path):
        log = DurableLog(tmp_path)
        await log.append("leads", {"id": 1, "notes": "linha 1\nlinha 2"})

        raw = log.path_for("leads").read_text(encoding="utf-8")
        assert raw.count("\n") == 1
        assert json.loads(raw)["notes"] == "linha 1\nlinha 2"

    @pytest.mark.asyncio
    async def test_non_ascii_is_kept_readable(self, tmp_path):
        log = DurableLog(tmp_path)
        await log.append("companies", {"id": 1, "name": "Padaria São João"})
        assert "São João" in log.path_for("companies").read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_append_failure_raises_storage_error(self, tmp_path):
        log = DurableLog(tmp_path)
        log.path_for("leads").mkdir()
        with pytest.raises(StorageError):
            await log.append("leads", {"id": 1})


class TestRewrite:

    @pytest.mark.asyncio
    async def test_rewrite_replaces_content(self, tmp_path):
        log = DurableLog(tmp_path)
        for i in range(1, 4):
            await log.append("users", {"id": i})

        await log.rewrite("users", [{"id": 1}, {"id": 3}])

        lines = await log.read_all("users")
        assert [json.loads(l)["id"] for l in lines] == [1, 3]
        assert not (tmp_path / "users.jsonl.tmp").exists()

    @pytest.mark.asyncio
    async def test_rewrite_to_empty(self, tmp_path):
        log = DurableLog(tmp_path)
        await log.append("proposals", {"id": 1})
        await log.rewrite("proposals", [])
        assert await log.read_all("proposals") == []


def test_serialize_record_is_compact():
    assert serialize_record({"id": 1, "cnpj": "11222333000181"}) == '{"id":1,"cnpj":"11222333000181"}'
