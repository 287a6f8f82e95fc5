"""notification-service: email and WhatsApp delivery with an audited pipeline."""

__version__ = "1.0.0"
