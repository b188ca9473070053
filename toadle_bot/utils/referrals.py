"""Referral ledger: invite ownership and one-time referral claims."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from toadle_bot.utils.ledger import UserLedger
from toadle_bot.utils.models import InviteRegistration

logger = logging.getLogger("toadle.referrals")

DEFAULT_BONUS = 50
_CODE_RE = re.compile(r"^[a-zA-Z0-9]{2,20}$")
_URL_RE = re.compile(r"(?:https?://)?(?:www\.)?(?:discord\.gg|discord(?:app)?\.com/invite)/([^\s/?#]+)", re.IGNORECASE)

REGISTERED = "registered"
ALREADY_YOURS = "already_yours"
TAKEN = "taken"

ALREADY_CLAIMED = "already_claimed"
INVALID_CODE = "invalid_code"
SELF_REFERRAL = "self_referral"


def parse_invite_code(text: str) -> Optional[str]:
    """Extract an invite code from a bare code or a discord.gg / discord.com URL."""
    text = (text or "").strip()
    m = _URL_RE.search(text)
    code = m.group(1) if m else text
    return code if _CODE_RE.match(code) else None


@dataclass
class RegisterResult:
    status: str
    registration: InviteRegistration

    @property
    def success(self) -> bool:
        return self.status == REGISTERED


@dataclass
class ClaimResult:
    success: bool
    reason: Optional[str] = None
    inviter_id: Optional[str] = None
    bonus: int = 0


class ReferralLedger:
    def __init__(self, ledger: UserLedger, bonus: int = DEFAULT_BONUS):
        self.ledger = ledger
        self.bonus = bonus

    @property
    def store(self):
        return self.ledger.store

    def register_invite(self, code: str, inviter_id) -> RegisterResult:
        """Record `inviter_id` as the owner of `code`.

        A code keeps its first owner forever; later registrations are
        reported as `already_yours` or `taken` and change nothing.
        """
        existing = self.store.invites.get(code)
        if existing is not None:
            status = ALREADY_YOURS if existing.inviter_id == str(inviter_id) else TAKEN
            return RegisterResult(status, existing)
        registration = InviteRegistration(code=code, inviter_id=str(inviter_id))
        self.store.invites[code] = registration
        logger.info("Invite %s registered to %s", code, inviter_id)
        return RegisterResult(REGISTERED, registration)

    def get_invite_owner(self, code: str) -> Optional[str]:
        registration = self.store.invites.get(code)
        return registration.inviter_id if registration else None

    def is_registered(self, code: str) -> bool:
        return code in self.store.invites

    def has_claimed(self, user_id) -> bool:
        return str(user_id) in self.store.claimed

    def invites_for(self, user_id) -> List[InviteRegistration]:
        uid = str(user_id)
        return sorted(
            (r for r in self.store.invites.values() if r.inviter_id == uid),
            key=lambda r: r.registered_at,
        )

    def claim(self, code: str, claimer_id) -> ClaimResult:
        """Credit the owner of `code` for referring `claimer_id`.

        Checks run in a fixed order: already claimed, then unknown code,
        then self-referral. Each user can succeed at most once.
        """
        claimer = str(claimer_id)
        if claimer in self.store.claimed:
            return ClaimResult(False, ALREADY_CLAIMED)
        registration = self.store.invites.get(code)
        if registration is None:
            return ClaimResult(False, INVALID_CODE)
        if registration.inviter_id == claimer:
            return ClaimResult(False, SELF_REFERRAL, inviter_id=registration.inviter_id)

        if self.bonus > 0:
            self.ledger.credit(registration.inviter_id, self.bonus)
        self.ledger.get_or_create_account(registration.inviter_id).referrals += 1
        registration.uses += 1
        self.store.claimed.add(claimer)
        logger.info("Referral claim: %s via %s -> %s (+%s)", claimer, code, registration.inviter_id, self.bonus)
        return ClaimResult(True, inviter_id=registration.inviter_id, bonus=self.bonus)
