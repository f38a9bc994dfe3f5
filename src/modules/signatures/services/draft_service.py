import logging
from datetime import datetime
from typing import Optional

from exceptions import InvalidRequestError
from modules.signatures.models.signature_token import TokenStatus
from modules.signatures.repositories.token_repository import TokenRepository, token_prefix
from modules.signatures.services.token_validator import TokenValidator

logger = logging.getLogger(__name__)


class DraftService:
    def __init__(self, tokens: TokenRepository, validator: TokenValidator):
        self.tokens = tokens
        self.validator = validator

    def save_draft(self, token: str, form_data, now: Optional[datetime] = None) -> datetime:
        """
        Stores ``form_data`` as the token's draft, replacing any earlier draft
        wholesale (last write wins). Returns the save timestamp.
        """
        if not isinstance(form_data, dict):
            raise InvalidRequestError("formData must be an object")

        now = now or datetime.utcnow()
        self.validator.require_usable(token, now)
        self.tokens.update_status(
            token,
            TokenStatus.DRAFT,
            form_data=form_data,
            last_saved_at=now,
            updated_at=now,
        )
        logger.debug("Draft saved for token %s", token_prefix(token))
        return now
