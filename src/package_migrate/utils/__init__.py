"""Logging, retry and temporary resource helpers."""
