from .cleanup import delete_expired_tokens
from .draft_service import DraftService
from .signature_request_service import SignatureRequestService
from .submission_service import SubmissionService, background_completion_email, completion_email_hook
from .token_validator import TokenValidator

__all__ = [
    'delete_expired_tokens', 'DraftService', 'SignatureRequestService',
    'SubmissionService', 'background_completion_email', 'completion_email_hook', 'TokenValidator'
]
