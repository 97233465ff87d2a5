"""Adapters package - thin wrappers around external services.

Implements the Adapter pattern to give the tracker a domain-focused
interface to the metadata provider.
"""

from .tmdb import TMDBAdapter

__all__ = ['TMDBAdapter']
