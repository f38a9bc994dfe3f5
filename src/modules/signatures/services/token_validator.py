from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from exceptions import AlreadyCompletedError, NotFoundError, TokenExpiredError
from modules.cases.repositories.case_repository import CaseRepository
from modules.signatures.models.signature_token import SignatureToken
from modules.signatures.repositories.token_repository import TokenRepository

INVALID_LINK_MESSAGE = (
    "Invalid signature link. This link may have been tampered with or does not exist."
)


@dataclass
class TokenValidation:
    is_valid: bool
    is_expired: bool = False
    is_completed: bool = False
    case_id: Optional[str] = None
    case_number: Optional[str] = None
    client_name: Optional[str] = None
    document_type: Optional[str] = None
    form_link: Optional[str] = None
    expires_at: Optional[datetime] = None
    error: Optional[str] = None


class TokenValidator:
    """
    Decides whether a signature link may be used.

    ``validate`` separates "the link exists" (``is_valid``) from "the link is
    usable" (not expired, not completed) so the portal can tell an expired
    link from a forged one. ``require_usable`` is the strict form used before
    any read or write of form data.
    """

    def __init__(self, tokens: TokenRepository, cases: CaseRepository):
        self.tokens = tokens
        self.cases = cases

    def validate(self, token: str, now: Optional[datetime] = None) -> TokenValidation:
        now = now or datetime.utcnow()
        signature_token = self.tokens.get_by_token(token)
        if signature_token is None:
            return TokenValidation(is_valid=False, error=INVALID_LINK_MESSAGE)

        case = self.cases.get_by_id(signature_token.case_id)
        validation = TokenValidation(
            is_valid=True,
            case_id=signature_token.case_id,
            case_number=case.case_number if case else None,
            client_name=self._client_name(signature_token, case),
            document_type=signature_token.document_type.value,
        )

        if signature_token.is_completed:
            validation.is_completed = True
            return validation

        if signature_token.is_expired(now):
            validation.is_expired = True
            return validation

        validation.form_link = signature_token.form_link
        validation.expires_at = signature_token.expires_at
        return validation

    def require_usable(self, token: str, now: Optional[datetime] = None) -> SignatureToken:
        now = now or datetime.utcnow()
        signature_token = self.tokens.get_by_token(token)
        if signature_token is None:
            raise NotFoundError("Invalid or expired token")
        if signature_token.is_completed:
            raise AlreadyCompletedError()
        if signature_token.is_expired(now):
            raise TokenExpiredError()
        return signature_token

    def mark_accessed(self, token: str, now: Optional[datetime] = None) -> SignatureToken:
        now = now or datetime.utcnow()
        self.require_usable(token, now)
        self.tokens.mark_accessed(token, now)
        return self.tokens.get_by_token(token)

    @staticmethod
    def _client_name(signature_token: SignatureToken, case) -> Optional[str]:
        form_data = signature_token.form_data or {}
        name = form_data.get("clientName")
        if name:
            return name
        return case.client_name if case else None
