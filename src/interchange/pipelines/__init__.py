"""
Outbound export and inbound import pipelines.
"""

from interchange.pipelines.inbound import InboundImporter
from interchange.pipelines.outbound import OutboundExporter

__all__ = ["OutboundExporter", "InboundImporter"]
