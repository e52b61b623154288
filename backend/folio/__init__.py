"""Folio brokerage snapshot service."""
