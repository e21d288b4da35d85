"""
Domain services for contextkit.

Contains the main business logic services:
- knowledge: Ingestion, retrieval and result post-processing
- context_builder: Token-budgeted context assembly across sources
"""
