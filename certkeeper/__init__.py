"""
certkeeper: TLS certificate lifecycle manager for the server administration panel.
"""

__version__ = "1.0.0"
