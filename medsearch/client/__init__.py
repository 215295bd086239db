from medsearch.client.api_client import MedSearchClient
from medsearch.client.errors import ApiError

__all__ = ['MedSearchClient', 'ApiError']
