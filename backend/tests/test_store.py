"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadDesk - Entity Store Tests                                               ║
║                                                                              ║
║  1. Records survive a restart field for field                                ║
║  2. Ids only grow, also across restarts and deletes                          ║
║  3. Unique username / cnpj                                                   ║
║  4. Deletes and delete-all stay deleted after reload                         ║
║  5. Replay tolerates malformed lines                                         ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import asyncio

import pytest

from models import LeadStatus, UserRole
from services.errors import DuplicateError, InputValidationError
from services.store import PROPOSALS, SETTINGS, USERS, LEADS

from tests.conftest import make_user, VALID_CNPJ, OTHER_VALID_CNPJ


def proposal_fields(**overrides):
    fields = {
        "cnpj": VALID_CNPJ,
        "company_name": "Acme LTDA",
        "consultant_id": 1,
        "consultant_name": "Ana",
    }
    fields.update(overrides)
    return fields


class TestRoundTrip:

    @pytest.mark.asyncio
    async def test_records_identical_after_reload(self, open_store):
        store = await open_store()
        user = await make_user(store)
        company = await store.create_company(
            cnpj=VALID_CNPJ, name="ACME", status="ATIVA", size="MICRO EMPRESA",
            activity="Comércio", open_date="01/02/2003",
        )
        lead = await store.create_lead(cnpj=VALID_CNPJ, company_name="ACME", phone="11999990000")
        proposal = await store.create_proposal(**proposal_fields(pix_rate="0.10"))

        reloaded = await open_store()
        assert await reloaded.get_user(user.id) == user
        assert await reloaded.get_company(company.id) == company
        assert await reloaded.get_lead(lead.id) == lead
        assert await reloaded.get_proposal(proposal.id) == proposal

    @pytest.mark.asyncio
    async def test_last_update_wins_on_replay(self, open_store):
        store = await open_store()
        lead = await store.create_lead(cnpj=VALID_CNPJ, company_name="ACME")
        await store.update_lead(lead.id, consultant_id=2, status=LeadStatus.ASSIGNED)
        await store.update_lead(lead.id, status=LeadStatus.COMPLETED)

        reloaded = await open_store()
        replayed = await reloaded.get_lead(lead.id)
        assert replayed.status == LeadStatus.COMPLETED
        assert replayed.consultant_id == 2
        assert replayed.created_at == lead.created_at
        assert len(await reloaded.list_leads()) == 1

    @pytest.mark.asyncio
    async def test_settings_last_write_wins(self, open_store):
        store = await open_store()
        await store.set_setting("pix_rate", "0.02")
        await store.set_setting("pix_rate", "0.05")

        reloaded = await open_store()
        assert await reloaded.get_setting("pix_rate") == "0.05"
        assert await reloaded.get_setting("debit_rate") is None


class TestIds:

    @pytest.mark.asyncio
    async def test_ids_strictly_increase(self, open_store):
        store = await open_store()
        ids = [(await store.create_lead(cnpj=VALID_CNPJ, company_name="ACME")).id for _ in range(5)]
        assert ids == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_next_id_after_reload_exceeds_max(self, open_store):
        store = await open_store()
        for _ in range(3):
            await store.create_proposal(**proposal_fields())

        reloaded = await open_store()
        proposal = await reloaded.create_proposal(**proposal_fields())
        assert proposal.id == 4

    @pytest.mark.asyncio
    async def test_ids_are_per_kind(self, open_store):
        store = await open_store()
        await store.create_lead(cnpj=VALID_CNPJ, company_name="ACME")
        await store.create_lead(cnpj=VALID_CNPJ, company_name="ACME")
        proposal = await store.create_proposal(**proposal_fields())
        assert proposal.id == 1

    @pytest.mark.asyncio
    async def test_deleted_id_not_reused_in_process(self, open_store):
        store = await open_store()
        first = await store.create_proposal(**proposal_fields())
        second = await store.create_proposal(**proposal_fields())
        await store.delete_proposal(second.id)

        third = await store.create_proposal(**proposal_fields())
        assert third.id > second.id > first.id

    @pytest.mark.asyncio
    async def test_deleted_id_not_reused_after_reload(self, open_store):
        store = await open_store()
        await store.create_proposal(**proposal_fields())
        last = await store.create_proposal(**proposal_fields())
        await store.delete_proposal(last.id)

        reloaded = await open_store()
        assert [p.id for p in await reloaded.list_proposals()] == [1]
        assert (await reloaded.create_proposal(**proposal_fields())).id == last.id + 1

    @pytest.mark.asyncio
    async def test_ids_continue_after_delete_all_and_reload(self, open_store):
        store = await open_store()
        for _ in range(3):
            await store.create_proposal(**proposal_fields())
        await store.delete_all_proposals()

        reloaded = await open_store()
        assert await reloaded.list_proposals() == []
        assert (await reloaded.create_proposal(**proposal_fields())).id == 4

    @pytest.mark.asyncio
    async def test_concurrent_creates_get_distinct_ids(self, open_store):
        store = await open_store()
        leads = await asyncio.gather(*[
            store.create_lead(cnpj=VALID_CNPJ, company_name=f"Empresa {i}") for i in range(10)
        ])
        assert sorted(l.id for l in leads) == list(range(1, 11))

        reloaded = await open_store()
        assert len(await reloaded.list_leads()) == 10


class TestUniqueness:

    @pytest.mark.asyncio
    async def test_duplicate_username_rejected(self, open_store):
        store = await open_store()
        await make_user(store, username="ana")
        with pytest.raises(DuplicateError):
            await make_user(store, username="ana", name="Outra Ana")
        assert len(await store.list_users()) == 1

    @pytest.mark.asyncio
    async def test_update_to_taken_username_rejected(self, open_store):
        store = await open_store()
        await make_user(store, username="ana")
        bruno = await make_user(store, username="bruno", name="Bruno")
        with pytest.raises(DuplicateError):
            await store.update_user(bruno.id, username="ana")

    @pytest.mark.asyncio
    async def test_duplicate_cnpj_rejected(self, open_store):
        store = await open_store()
        fields = {"cnpj": VALID_CNPJ, "name": "ACME", "status": "ATIVA", "size": "ME"}
        await store.create_company(**fields)
        with pytest.raises(DuplicateError):
            await store.create_company(**fields)

    @pytest.mark.asyncio
    async def test_get_or_create_company_returns_existing(self, open_store):
        store = await open_store()
        fields = {"cnpj": OTHER_VALID_CNPJ, "name": "ACME", "status": "ATIVA", "size": "ME"}
        first, created = await store.get_or_create_company(**fields)
        second, created_again = await store.get_or_create_company(**fields)
        assert created is True
        assert created_again is False
        assert second.id == first.id
        assert len(await store.list_companies()) == 1


class TestDeletes:

    @pytest.mark.asyncio
    async def test_deleted_user_stays_deleted_after_reload(self, open_store):
        store = await open_store()
        ana = await make_user(store, username="ana")
        bruno = await make_user(store, username="bruno", name="Bruno")

        assert await store.delete_user(ana.id) is True
        assert await store.get_user(ana.id) is None

        reloaded = await open_store()
        assert await reloaded.get_user(ana.id) is None
        assert await reloaded.get_user(bruno.id) == bruno

    @pytest.mark.asyncio
    async def test_delete_missing_returns_false(self, open_store):
        store = await open_store()
        assert await store.delete_user(99) is False
        assert await store.delete_proposal(99) is False

    @pytest.mark.asyncio
    async def test_delete_proposal_persists(self, open_store):
        store = await open_store()
        keep = await store.create_proposal(**proposal_fields())
        drop = await store.create_proposal(**proposal_fields())
        await store.delete_proposal(drop.id)

        reloaded = await open_store()
        assert [p.id for p in await reloaded.list_proposals()] == [keep.id]

    @pytest.mark.asyncio
    async def test_delete_all_proposals_consistent_across_reload(self, open_store):
        store = await open_store()
        for _ in range(3):
            await store.create_proposal(**proposal_fields())

        assert await store.delete_all_proposals() == 3
        assert await store.list_proposals() == []

        reloaded = await open_store()
        assert await reloaded.list_proposals() == []

    @pytest.mark.asyncio
    async def test_user_delete_leaves_references_dangling(self, open_store):
        store = await open_store()
        ana = await make_user(store)
        lead = await store.create_lead(cnpj=VALID_CNPJ, company_name="ACME")
        await store.update_lead(lead.id, consultant_id=ana.id, status=LeadStatus.ASSIGNED)

        await store.delete_user(ana.id)
        assert (await store.get_lead(lead.id)).consultant_id == ana.id


class TestReplay:

    @pytest.mark.asyncio
    async def test_malformed_lines_are_skipped(self, tmp_path, open_store):
        store = await open_store()
        await store.create_lead(cnpj=VALID_CNPJ, company_name="ACME")
        with open(store.log.path_for(LEADS), "a", encoding="utf-8") as f:
            f.write("{not json\n")
            f.write('{"id": "x", "cnpj": 1}\n')
        await store.create_lead(cnpj=VALID_CNPJ, company_name="ACME 2")

        reloaded = await open_store()
        assert [l.id for l in await reloaded.list_leads()] == [1, 2]

    @pytest.mark.asyncio
    async def test_invalid_record_is_rejected_before_write(self, open_store):
        store = await open_store()
        with pytest.raises(InputValidationError):
            await store.create_lead(cnpj=VALID_CNPJ, company_name="ACME", status="archived")
        assert await store.log.read_all(LEADS) == []

    @pytest.mark.asyncio
    async def test_camel_case_setting_keys_are_read(self, open_store):
        store = await open_store()
        with open(store.log.path_for(SETTINGS), "a", encoding="utf-8") as f:
            f.write('{"key": "pixRate", "value": "0.07"}\n')
            f.write('{"key": "credit12xRate", "value": "1.10"}\n')
            f.write('{"key": "whatsappTemplate", "value": "Oi {{companyName}}"}\n')

        reloaded = await open_store()
        assert await reloaded.get_setting("pix_rate") == "0.07"
        assert await reloaded.get_setting("credit_12x_rate") == "1.10"
        assert await reloaded.get_setting("whatsapp_template") == "Oi {{companyName}}"
        assert await reloaded.get_setting("pixRate") is None

    @pytest.mark.asyncio
    async def test_later_snake_case_write_wins(self, open_store):
        store = await open_store()
        with open(store.log.path_for(SETTINGS), "a", encoding="utf-8") as f:
            f.write('{"key": "pixRate", "value": "0.07"}\n')
        await store.set_setting("pix_rate", "0.09")

        reloaded = await open_store()
        assert await reloaded.get_setting("pix_rate") == "0.09"


class TestDefaultAdmin:

    @pytest.mark.asyncio
    async def test_admin_created_once(self, open_store):
        store = await open_store()
        admin = await store.ensure_default_admin("admin", "admin123", "Administrador")
        assert admin.role == UserRole.ADMIN
        assert admin.password_hash != "admin123"

        reloaded = await open_store()
        assert await reloaded.ensure_default_admin("admin", "admin123", "Administrador") is None
        assert len(await reloaded.list_users()) == 1

    @pytest.mark.asyncio
    async def test_no_admin_when_users_exist(self, open_store):
        store = await open_store()
        await make_user(store)
        assert await store.ensure_default_admin("admin", "admin123", "Administrador") is None


class TestCompaction:

    @pytest.mark.asyncio
    async def test_compact_keeps_one_line_per_record(self, open_store):
        store = await open_store()
        lead = await store.create_lead(cnpj=VALID_CNPJ, company_name="ACME")
        for status in (LeadStatus.ASSIGNED, LeadStatus.COMPLETED, LeadStatus.ASSIGNED):
            await store.update_lead(lead.id, consultant_id=2, status=status)
        assert len(await store.log.read_all(LEADS)) == 4

        assert await store.compact(LEADS) == 1
        assert len(await store.log.read_all(LEADS)) == 1

        reloaded = await open_store()
        assert await reloaded.get_lead(lead.id) == await store.get_lead(lead.id)

    @pytest.mark.asyncio
    async def test_compact_all(self, open_store):
        store = await open_store()
        await store.set_setting("pix_rate", "0.01")
        await store.set_setting("pix_rate", "0.02")
        counts = await store.compact_all()
        assert counts["settings"] == 1
        assert counts[USERS] == 0
        assert counts[PROPOSALS] == 0

        reloaded = await open_store()
        assert await reloaded.get_setting("pix_rate") == "0.02"

    @pytest.mark.asyncio
    async def test_unknown_kind(self, open_store):
        store = await open_store()
        with pytest.raises(ValueError):
            await store.compact("invoices")
