"""
LeadDesk - Business registry client (ReceitaWS-compatible)

GET {REGISTRY_URL}/{cnpj} -> JSON payload:
    {"status": "OK", "cnpj": "11.222.333/0001-81", "nome": "...",
     "fantasia": "...", "situacao": "ATIVA", "porte": "MICRO EMPRESA",
     "atividade_principal": [{"code": "...", "text": "..."}],
     "abertura": "01/02/2003"}
or {"status": "ERROR", "message": "CNPJ inválido"}.

Two distinct failures, both shown to users as "not found":
- RegistryNotFoundError: the registry answered without a record
- UpstreamUnavailableError: network error, timeout, non-JSON answer
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from config import REGISTRY_URL, REGISTRY_TIMEOUT, normalize_cnpj
from services.errors import RegistryNotFoundError, UpstreamUnavailableError

logger = logging.getLogger("registry_client")


@dataclass(frozen=True)
class RegistryRecord:
    cnpj: str
    name: str
    status: str
    size: str
    activity: Optional[str] = None
    open_date: Optional[str] = None

    def company_fields(self) -> dict:
        return {
            "cnpj": self.cnpj,
            "name": self.name,
            "status": self.status,
            "size": self.size,
            "activity": self.activity,
            "open_date": self.open_date,
        }


def parse_registry_payload(cnpj: str, payload) -> RegistryRecord:
    """Payload -> RegistryRecord, or RegistryNotFoundError if it holds no usable record"""
    if not isinstance(payload, dict) or payload.get("status") != "OK":
        message = payload.get("message") if isinstance(payload, dict) else None
        raise RegistryNotFoundError(f"CNPJ {cnpj} not found in registry: {message or 'no record'}")

    name = payload.get("nome") or payload.get("fantasia")
    if not name:
        raise RegistryNotFoundError(f"CNPJ {cnpj}: registry record has no name")

    activity = None
    activities = payload.get("atividade_principal") or []
    if activities and isinstance(activities[0], dict):
        activity = activities[0].get("text") or None

    return RegistryRecord(
        cnpj=normalize_cnpj(payload.get("cnpj")) or cnpj,
        name=name,
        status=payload.get("situacao") or "",
        size=payload.get("porte") or "",
        activity=activity,
        open_date=payload.get("abertura") or None,
    )


class RegistryClient:
    """
    One shared httpx.AsyncClient per process (closed on shutdown).
    `transport` lets tests plug an httpx.MockTransport in.
    """

    def __init__(
        self,
        base_url: str = REGISTRY_URL,
        timeout: float = REGISTRY_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def fetch(self, cnpj: str) -> RegistryRecord:
        url = f"{self.base_url}/{cnpj}"
        try:
            response = await self._client.get(url)
            payload = response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"[REGISTRY] Timeout after {self.timeout}s for CNPJ {cnpj}: {e}")
            raise UpstreamUnavailableError(f"Registry timeout for CNPJ {cnpj}")
        except httpx.HTTPError as e:
            logger.warning(f"[REGISTRY] Request failed for CNPJ {cnpj}: {e}")
            raise UpstreamUnavailableError(f"Registry unavailable for CNPJ {cnpj}")
        except ValueError as e:
            logger.warning(
                f"[REGISTRY] Non-JSON answer for CNPJ {cnpj} (HTTP {response.status_code}): {e}"
            )
            raise UpstreamUnavailableError(f"Registry unavailable for CNPJ {cnpj}")

        try:
            record = parse_registry_payload(cnpj, payload)
        except RegistryNotFoundError as e:
            logger.info(f"[REGISTRY] {e.message}")
            raise

        logger.info(f"[REGISTRY] CNPJ {cnpj} found: {record.name} ({record.status})")
        return record

    async def aclose(self):
        await self._client.aclose()
