"""
Secretary - Push-to-Talk Voice Commands for macOS

Hold a key, speak, release: the utterance is transcribed, routed to one
desktop action by a language model, and executed.
"""

__version__ = "1.0.0"

from secretary.config import Config

__all__ = ["Config", "__version__"]
