"""Async typed client for contest control system (CCS) REST APIs."""

from .interactor import CCSClient

__all__ = ['CCSClient']
