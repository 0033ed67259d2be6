from .supabase_client import SupabaseClient
from .identity_client import SupabaseIdentityProvider
from .repositories import QuestionRepository, ResponseRepository
from .storage_client import MediaStorage

__all__ = [
    'SupabaseClient',
    'SupabaseIdentityProvider',
    'QuestionRepository',
    'ResponseRepository',
    'MediaStorage',
]
