from .token_cleanup import start_token_cleanup_job

__all__ = ['start_token_cleanup_job']
