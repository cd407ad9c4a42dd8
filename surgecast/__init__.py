"""
SurgeCast

Environmental-signal ingestion and hospital surge prediction
"""

__version__ = "1.0.0"
