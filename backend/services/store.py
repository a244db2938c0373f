"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadDesk - Entity Store                                                     ║
║                                                                              ║
║  In-memory index of users / companies / leads / proposals / settings,        ║
║  rebuilt from the durable log at startup and kept in step with it.           ║
║                                                                              ║
║  INVARIANTS:                                                                 ║
║  - ids are assigned here, per kind, strictly increasing, never reused        ║
║  - a record is visible in memory only once its log write succeeded           ║
║  - User.username and Company.cnpj are unique                                 ║
║  - every read and write of a kind holds that kind's lock                     ║
║  - replay: last line for an id (or settings key) wins                        ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import json
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ValidationError

from config import now_utc, hash_password
from models import User, UserRole, Company, Lead, LeadStatus, Proposal
from services.durable_log import DurableLog
from services.errors import DuplicateError, InputValidationError

logger = logging.getLogger("store")

USERS = "users"
COMPANIES = "companies"
LEADS = "leads"
PROPOSALS = "proposals"
SETTINGS = "settings"

RECORD_MODELS = {
    USERS: User,
    COMPANIES: Company,
    LEADS: Lead,
    PROPOSALS: Proposal,
}

ALL_KINDS = [USERS, COMPANIES, LEADS, PROPOSALS, SETTINGS]

# Compacted logs end with {"id": <highest id>, "deleted": true} when that record
# is gone, so replay still resumes numbering after it
DELETED_MARKER = "deleted"

# Setting keys as spelled by logs written in camelCase
SETTING_KEY_ALIASES = {
    "pixRate": "pix_rate",
    "debitRate": "debit_rate",
    "creditRate": "credit_rate",
    "credit12xRate": "credit_12x_rate",
    "anticipationRate": "anticipation_rate",
    "whatsappTemplate": "whatsapp_template",
}


def dump_record(record: BaseModel) -> dict:
    """Record -> JSON-ready dict (datetimes as ISO strings, enums as values)"""
    return record.model_dump(mode="json")


def _validation_errors(e: ValidationError) -> Dict[str, str]:
    return {
        ".".join(str(p) for p in err["loc"]) or "__root__": err["msg"]
        for err in e.errors()
    }


class Store:
    """
    Single owner of all records. One instance per process, created by
    server.create_app() and handed to routes through routes/deps.py.
    """

    def __init__(self, log: DurableLog):
        self.log = log
        self._tables: Dict[str, Dict[int, BaseModel]] = {kind: {} for kind in RECORD_MODELS}
        self._settings: Dict[str, str] = {}
        self._next_id: Dict[str, int] = {kind: 1 for kind in RECORD_MODELS}
        self._locks: Dict[str, asyncio.Lock] = {kind: asyncio.Lock() for kind in ALL_KINDS}

    # ==================== STARTUP ====================

    async def load(self):
        """
        Replay every log. Malformed lines are skipped with a warning;
        an unreadable file raises StorageFatalError (from DurableLog).
        """
        for kind, model_cls in RECORD_MODELS.items():
            async with self._locks[kind]:
                table: Dict[int, BaseModel] = {}
                high_water = 0
                for line_no, line in enumerate(await self.log.read_all(kind), start=1):
                    try:
                        data = json.loads(line)
                        if isinstance(data, dict) and data.get(DELETED_MARKER) is True:
                            record_id = int(data["id"])
                            table.pop(record_id, None)
                            high_water = max(high_water, record_id)
                            continue
                        record = model_cls.model_validate(data)
                    except (ValueError, KeyError, TypeError) as e:
                        logger.warning(f"[STORE] Skipping malformed {kind} line {line_no}: {e}")
                        continue
                    table[record.id] = record
                    high_water = max(high_water, record.id)

                self._tables[kind] = table
                self._next_id[kind] = high_water + 1
                logger.info(f"[STORE] Loaded {len(table)} {kind} (next id {self._next_id[kind]})")

        async with self._locks[SETTINGS]:
            settings: Dict[str, str] = {}
            for line_no, line in enumerate(await self.log.read_all(SETTINGS), start=1):
                try:
                    entry = json.loads(line)
                    key = str(entry["key"])
                    settings[SETTING_KEY_ALIASES.get(key, key)] = str(entry["value"])
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning(f"[STORE] Skipping malformed settings line {line_no}: {e}")
            self._settings = settings
            logger.info(f"[STORE] Loaded {len(settings)} setting(s)")

    async def ensure_default_admin(
        self,
        username: str,
        password: str,
        name: str,
        email: Optional[str] = None,
    ) -> Optional[User]:
        """Create the bootstrap admin when the users table is empty. Returns it, or None."""
        async with self._locks[USERS]:
            if self._tables[USERS]:
                return None
            admin = await self._insert(USERS, {
                "username": username,
                "password_hash": hash_password(password),
                "name": name,
                "email": email,
                "role": UserRole.ADMIN,
            })
        logger.info(f"[STORE] Default admin '{username}' created (id {admin.id})")
        return admin

    # ==================== INTERNALS (caller holds the kind's lock) ====================

    async def _insert(self, kind: str, fields: Dict[str, Any]) -> BaseModel:
        model_cls = RECORD_MODELS[kind]
        try:
            record = model_cls.model_validate({
                **fields,
                "id": self._next_id[kind],
                "created_at": now_utc(),
            })
        except ValidationError as e:
            raise InputValidationError(f"Invalid {kind} record", _validation_errors(e))

        # Consumed even if the append below fails
        self._next_id[kind] = record.id + 1
        await self.log.append(kind, dump_record(record))
        self._tables[kind][record.id] = record
        return record

    async def _update(
        self,
        kind: str,
        record_id: int,
        fields: Dict[str, Any],
        guard: Optional[Callable[[BaseModel], None]] = None,
    ) -> Optional[BaseModel]:
        current = self._tables[kind].get(record_id)
        if current is None:
            return None
        if guard is not None:
            guard(current)

        try:
            updated = RECORD_MODELS[kind].model_validate({
                **current.model_dump(),
                **fields,
                "id": current.id,
                "created_at": current.created_at,
            })
        except ValidationError as e:
            raise InputValidationError(f"Invalid {kind} update", _validation_errors(e))

        await self.log.append(kind, dump_record(updated))
        self._tables[kind][record_id] = updated
        return updated

    def _snapshot(self, kind: str, table: Dict[int, BaseModel]) -> List[dict]:
        lines = [dump_record(r) for r in table.values()]
        last_id = self._next_id[kind] - 1
        if last_id > 0 and last_id not in table:
            lines.append({"id": last_id, DELETED_MARKER: True})
        return lines

    async def _delete(
        self,
        kind: str,
        record_id: int,
        guard: Optional[Callable[[BaseModel], None]] = None,
    ) -> bool:
        table = self._tables[kind]
        if record_id not in table:
            return False
        if guard is not None:
            guard(table[record_id])
        remaining = {rid: r for rid, r in table.items() if rid != record_id}
        await self.log.rewrite(kind, self._snapshot(kind, remaining))
        self._tables[kind] = remaining
        return True

    # ==================== USERS ====================

    async def create_user(
        self,
        username: str,
        password_hash: str,
        name: str,
        email: Optional[str] = None,
        role: UserRole = UserRole.CONSULTANT,
    ) -> User:
        async with self._locks[USERS]:
            if any(u.username == username for u in self._tables[USERS].values()):
                raise DuplicateError("user", "username", username)
            user = await self._insert(USERS, {
                "username": username,
                "password_hash": password_hash,
                "name": name,
                "email": email,
                "role": role,
            })
        logger.info(f"[STORE] User {user.id} '{username}' created ({user.role.value})")
        return user

    async def get_user(self, user_id: int) -> Optional[User]:
        async with self._locks[USERS]:
            return self._tables[USERS].get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        async with self._locks[USERS]:
            for user in self._tables[USERS].values():
                if user.username == username:
                    return user
            return None

    async def list_users(self) -> List[User]:
        async with self._locks[USERS]:
            return list(self._tables[USERS].values())

    async def list_consultants(self) -> List[User]:
        async with self._locks[USERS]:
            return [u for u in self._tables[USERS].values() if u.role == UserRole.CONSULTANT]

    async def update_user(self, user_id: int, **fields) -> Optional[User]:
        async with self._locks[USERS]:
            username = fields.get("username")
            if username is not None and any(
                u.username == username and u.id != user_id
                for u in self._tables[USERS].values()
            ):
                raise DuplicateError("user", "username", username)
            return await self._update(USERS, user_id, fields)

    async def delete_user(self, user_id: int) -> bool:
        """Remove the user and compact the users log. Leads / proposals keep their reference."""
        async with self._locks[USERS]:
            deleted = await self._delete(USERS, user_id)
        if deleted:
            logger.info(f"[STORE] User {user_id} deleted")
        return deleted

    # ==================== COMPANIES ====================

    async def create_company(self, **fields) -> Company:
        async with self._locks[COMPANIES]:
            if self._company_by_cnpj(fields.get("cnpj")) is not None:
                raise DuplicateError("company", "cnpj", fields.get("cnpj"))
            company = await self._insert(COMPANIES, fields)
        logger.info(f"[STORE] Company {company.id} cached for CNPJ {company.cnpj}")
        return company

    async def get_or_create_company(self, **fields) -> Tuple[Company, bool]:
        """
        Cache insert that tolerates a concurrent lookup of the same CNPJ:
        returns (company, created).
        """
        async with self._locks[COMPANIES]:
            existing = self._company_by_cnpj(fields.get("cnpj"))
            if existing is not None:
                return existing, False
            company = await self._insert(COMPANIES, fields)
        logger.info(f"[STORE] Company {company.id} cached for CNPJ {company.cnpj}")
        return company, True

    def _company_by_cnpj(self, cnpj: Optional[str]) -> Optional[Company]:
        for company in self._tables[COMPANIES].values():
            if company.cnpj == cnpj:
                return company
        return None

    async def get_company(self, company_id: int) -> Optional[Company]:
        async with self._locks[COMPANIES]:
            return self._tables[COMPANIES].get(company_id)

    async def get_company_by_cnpj(self, cnpj: str) -> Optional[Company]:
        async with self._locks[COMPANIES]:
            return self._company_by_cnpj(cnpj)

    async def list_companies(self) -> List[Company]:
        async with self._locks[COMPANIES]:
            return list(self._tables[COMPANIES].values())

    # ==================== LEADS ====================

    async def create_lead(self, **fields) -> Lead:
        async with self._locks[LEADS]:
            lead = await self._insert(LEADS, fields)
        logger.info(f"[STORE] Lead {lead.id} created for CNPJ {lead.cnpj} ({lead.status.value})")
        return lead

    async def get_lead(self, lead_id: int) -> Optional[Lead]:
        async with self._locks[LEADS]:
            return self._tables[LEADS].get(lead_id)

    async def list_leads(
        self,
        status: Optional[LeadStatus] = None,
        consultant_id: Optional[int] = None,
    ) -> List[Lead]:
        async with self._locks[LEADS]:
            leads = list(self._tables[LEADS].values())
        if status is not None:
            leads = [l for l in leads if l.status == status]
        if consultant_id is not None:
            leads = [l for l in leads if l.consultant_id == consultant_id]
        return leads

    async def update_lead(
        self,
        lead_id: int,
        guard: Optional[Callable[[Lead], None]] = None,
        **fields,
    ) -> Optional[Lead]:
        """
        Shallow merge + append. `guard` sees the current record under the
        leads lock and may raise to abort (used for transition checks).
        """
        async with self._locks[LEADS]:
            return await self._update(LEADS, lead_id, fields, guard)

    # ==================== PROPOSALS ====================

    async def create_proposal(self, **fields) -> Proposal:
        async with self._locks[PROPOSALS]:
            proposal = await self._insert(PROPOSALS, fields)
        logger.info(
            f"[STORE] Proposal {proposal.id} created for CNPJ {proposal.cnpj} "
            f"by consultant {proposal.consultant_id}"
        )
        return proposal

    async def get_proposal(self, proposal_id: int) -> Optional[Proposal]:
        async with self._locks[PROPOSALS]:
            return self._tables[PROPOSALS].get(proposal_id)

    async def list_proposals(self, consultant_id: Optional[int] = None) -> List[Proposal]:
        async with self._locks[PROPOSALS]:
            proposals = list(self._tables[PROPOSALS].values())
        if consultant_id is not None:
            proposals = [p for p in proposals if p.consultant_id == consultant_id]
        return proposals

    async def update_proposal(
        self,
        proposal_id: int,
        guard: Optional[Callable[[Proposal], None]] = None,
        **fields,
    ) -> Optional[Proposal]:
        async with self._locks[PROPOSALS]:
            return await self._update(PROPOSALS, proposal_id, fields, guard)

    async def delete_proposal(
        self,
        proposal_id: int,
        guard: Optional[Callable[[Proposal], None]] = None,
    ) -> bool:
        async with self._locks[PROPOSALS]:
            deleted = await self._delete(PROPOSALS, proposal_id, guard)
        if deleted:
            logger.info(f"[STORE] Proposal {proposal_id} deleted")
        return deleted

    async def delete_all_proposals(self) -> int:
        """Empty memory and log together; ids keep counting from where they were."""
        async with self._locks[PROPOSALS]:
            count = len(self._tables[PROPOSALS])
            await self.log.rewrite(PROPOSALS, self._snapshot(PROPOSALS, {}))
            self._tables[PROPOSALS] = {}
        logger.info(f"[STORE] All proposals deleted ({count})")
        return count

    # ==================== SETTINGS ====================

    async def get_setting(self, key: str) -> Optional[str]:
        async with self._locks[SETTINGS]:
            return self._settings.get(key)

    async def all_settings(self) -> Dict[str, str]:
        async with self._locks[SETTINGS]:
            return dict(self._settings)

    async def set_setting(self, key: str, value: str) -> str:
        async with self._locks[SETTINGS]:
            await self.log.append(SETTINGS, {
                "key": key,
                "value": value,
                "updated_at": now_utc().isoformat(),
            })
            self._settings[key] = value
        logger.info(f"[STORE] Setting '{key}' updated")
        return value

    # ==================== COMPACTION ====================

    async def compact(self, kind: str) -> int:
        """Rewrite a kind's log as a snapshot of memory. Returns the record count."""
        if kind not in ALL_KINDS:
            raise ValueError(f"Unknown record kind: {kind}")

        async with self._locks[kind]:
            if kind == SETTINGS:
                lines = [{"key": k, "value": v} for k, v in self._settings.items()]
                count = len(lines)
            else:
                lines = self._snapshot(kind, self._tables[kind])
                count = len(self._tables[kind])
            await self.log.rewrite(kind, lines)
        return count

    async def compact_all(self) -> Dict[str, int]:
        return {kind: await self.compact(kind) for kind in ALL_KINDS}
