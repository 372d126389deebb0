"""
License gate.

The control sheet lists known emails (column B), their expiry (column C)
and a used marker (column F). A known email with an empty marker buys one
paid run, claimed by writing the email into its marker cell. An unknown
email gets a one-caption trial.

The claim is a read followed later by a write, with no lock in between: two
processes checking the same unused row at the same time can both pass.

Within one process the first successful check is cached in a
`LicenseSession`; later checks with the same email reuse it, and a
different email is refused outright.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from .errors import EmailInUse, EmailMismatch

logger = logging.getLogger(__name__)

EMAIL_OFFSET = 0  # B
EXPIRY_OFFSET = 1  # C
USED_MARKER_OFFSET = 4  # F


class LicenseStatus(enum.Enum):
    PAID = "paid"
    TRIAL = "trial"


@dataclass(frozen=True)
class LicenseRecord:
    row_number: int
    email: str
    expiry: Optional[str]
    used_marker: str


@dataclass(frozen=True)
class LicenseResult:
    email: str
    status: LicenseStatus
    expiry: Optional[str] = None

    @property
    def is_trial(self) -> bool:
        return self.status is LicenseStatus.TRIAL


@dataclass(frozen=True)
class LicenseSession:
    """Per-process license state. A fresh session has no validated email."""

    result: Optional[LicenseResult] = None
    known_emails: FrozenSet[str] = frozenset()

    @property
    def validated_email(self) -> Optional[str]:
        return self.result.email if self.result else None


def _cell(row: List[str], index: int) -> str:
    return row[index].strip() if len(row) > index and row[index] else ""


def parse_license_rows(rows: List[List[str]]) -> Dict[str, LicenseRecord]:
    """Index the B:F rows by email; the first row for an email wins."""
    records: Dict[str, LicenseRecord] = {}
    for index, row in enumerate(rows):
        email = _cell(row, EMAIL_OFFSET)
        if not email or email in records:
            continue
        records[email] = LicenseRecord(
            row_number=index + 1,
            email=email,
            expiry=_cell(row, EXPIRY_OFFSET) or None,
            used_marker=_cell(row, USED_MARKER_OFFSET),
        )
    return records


class LicenseGate:
    def __init__(self, sheet) -> None:
        self.sheet = sheet

    def check(self, session: LicenseSession, email: str) -> Tuple[LicenseResult, LicenseSession]:
        """
        Validate `email` and return the result with the updated session.

        Raises EmailMismatch when the session already holds a different
        email, EmailInUse when the email's row has been claimed.
        """
        if session.result is not None:
            if email != session.validated_email:
                raise EmailMismatch(email, session.validated_email)
            logger.info("License already checked in this session (%s)", session.result.status.value)
            return session.result, session

        records = parse_license_rows(self.sheet.read_license_rows())
        known = frozenset(records)
        record = records.get(email)

        if record is None:
            logger.info("Email not licensed, granting a one-time trial")
            result = LicenseResult(email=email, status=LicenseStatus.TRIAL)
        elif record.used_marker:
            raise EmailInUse(email, record.expiry)
        else:
            self.sheet.mark_used(record.row_number, email)
            logger.info("License accepted, expires %s", record.expiry or "unknown")
            result = LicenseResult(email=email, status=LicenseStatus.PAID, expiry=record.expiry)

        return result, LicenseSession(result=result, known_emails=known)
