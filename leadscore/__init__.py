"""LeadScore - Hebrew sales call transcription and lead scoring."""

__version__ = "1.0.0"
