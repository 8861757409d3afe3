"""
ConsultAI Backend

Cache-aside layer for the expensive operations of the consultation
platform (AI inference, resume and document parsing).
"""

__version__ = "0.1.0"
