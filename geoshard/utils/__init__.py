"""Shared utilities."""

from .json_utils import ExtendedJSONEncoder, clean_for_json, dumps

__all__ = ['ExtendedJSONEncoder', 'clean_for_json', 'dumps']
