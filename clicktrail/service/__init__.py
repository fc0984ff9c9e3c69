"""Ingestion service: validation, normalization and store application of event batches."""

from clicktrail.service.ingestion import IngestionService, clamp_limit

__all__ = ["IngestionService", "clamp_limit"]
