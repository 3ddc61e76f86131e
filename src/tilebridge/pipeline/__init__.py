"""Import, export and metadata pipelines."""

from .exporter import ExportPipeline
from .importer import ImportPipeline
from .metadata import MetadataReporter

__all__ = ["ExportPipeline", "ImportPipeline", "MetadataReporter"]
