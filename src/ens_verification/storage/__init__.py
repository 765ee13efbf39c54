"""Storage modules for verification output and run metadata."""

from ens_verification.storage.metadata import MetadataTracker
from ens_verification.storage.output_writer import OUTPUT_FORMATS, OutputWriter, save_point_verif

__all__ = ["OutputWriter", "save_point_verif", "MetadataTracker", "OUTPUT_FORMATS"]
