"""
Configuration and shared helpers
LeadDesk - environment settings, time, passwords, CNPJ.
"""

import os
import hmac
import hashlib
import secrets
from datetime import datetime, timezone
from dotenv import load_dotenv
from pathlib import Path

# Load .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Storage (one append-only log per record kind)
DATA_DIR = Path(os.environ.get('DATA_DIR', str(ROOT_DIR / 'data')))

# External business registry
REGISTRY_URL = os.environ.get('REGISTRY_URL', 'https://www.receitaws.com.br/v1/cnpj').rstrip('/')
REGISTRY_TIMEOUT = float(os.environ.get('REGISTRY_TIMEOUT', '10'))

# Bootstrap admin, only used when the users log is empty
DEFAULT_ADMIN_USERNAME = os.environ.get('DEFAULT_ADMIN_USERNAME', 'admin')
DEFAULT_ADMIN_PASSWORD = os.environ.get('DEFAULT_ADMIN_PASSWORD', 'admin123')
DEFAULT_ADMIN_NAME = os.environ.get('DEFAULT_ADMIN_NAME', 'Administrador')
DEFAULT_ADMIN_EMAIL = os.environ.get('DEFAULT_ADMIN_EMAIL', 'admin@pagbank.com')

SESSION_TTL_DAYS = int(os.environ.get('SESSION_TTL_DAYS', '7'))
CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

PASSWORD_HASH_ITERATIONS = int(os.environ.get('PASSWORD_HASH_ITERATIONS', '120000'))

# Pending leads younger than this are flagged as "new" for polling dashboards
NEW_LEAD_WINDOW_SECONDS = 30


# ==================== HELPERS ====================

def now_utc() -> datetime:
    """Current time, timezone-aware UTC"""
    return datetime.now(timezone.utc)

def now_iso() -> str:
    """Current time as an ISO string"""
    return now_utc().isoformat()

def generate_token() -> str:
    """Opaque session token"""
    return secrets.token_urlsafe(32)

def hash_password(password: str, iterations: int = None) -> str:
    """
    Salted PBKDF2-SHA256.
    Format: pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>
    """
    iterations = iterations or PASSWORD_HASH_ITERATIONS
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac('sha256', password.encode(), salt, iterations)
    return f"pbkdf2_sha256${iterations}${salt.hex()}${digest.hex()}"

def verify_password(password: str, stored: str) -> bool:
    """Constant-time check of a password against a hash_password() value"""
    try:
        algorithm, iterations, salt_hex, digest_hex = stored.split('$')
        if algorithm != 'pbkdf2_sha256':
            return False
        digest = hashlib.pbkdf2_hmac(
            'sha256', password.encode(), bytes.fromhex(salt_hex), int(iterations)
        )
    except (ValueError, AttributeError):
        return False
    return hmac.compare_digest(digest.hex(), digest_hex)


# ==================== CNPJ ====================

CNPJ_LENGTH = 14
_CNPJ_WEIGHTS_1 = [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]
_CNPJ_WEIGHTS_2 = [6] + _CNPJ_WEIGHTS_1


def normalize_cnpj(cnpj: str) -> str:
    """Keep digits only (11.222.333/0001-81 -> 11222333000181)"""
    return ''.join(filter(str.isdigit, cnpj or ''))


def _cnpj_check_digit(digits: str, weights: list) -> int:
    total = sum(int(d) * w for d, w in zip(digits, weights))
    rest = total % 11
    return 0 if rest < 2 else 11 - rest


def validate_cnpj(cnpj: str) -> tuple[bool, str]:
    """
    Validate a CNPJ.
    Rules:
    - 14 digits once cleaned
    - no repeated digit (00000000000000)
    - both check digits

    Returns: (is_valid, cleaned_cnpj_or_error)
    """
    digits = normalize_cnpj(cnpj)

    if len(digits) != CNPJ_LENGTH:
        return False, f"CNPJ must have {CNPJ_LENGTH} digits ({len(digits)} given)"

    if len(set(digits)) == 1:
        return False, "Invalid CNPJ (repeated digits)"

    first = _cnpj_check_digit(digits[:12], _CNPJ_WEIGHTS_1)
    second = _cnpj_check_digit(digits[:12] + str(first), _CNPJ_WEIGHTS_2)
    if digits[12:] != f"{first}{second}":
        return False, "Invalid CNPJ (check digits)"

    return True, digits


def format_cnpj(cnpj: str) -> str:
    """11222333000181 -> 11.222.333/0001-81 (anything else is returned untouched)"""
    digits = normalize_cnpj(cnpj)
    if len(digits) != CNPJ_LENGTH:
        return cnpj
    return f"{digits[:2]}.{digits[2:5]}.{digits[5:8]}/{digits[8:12]}-{digits[12:]}"
