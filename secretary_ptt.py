#!/usr/bin/env python3
"""
Secretary - Push-to-Talk Voice Commands

Hold Right Option, speak a command, release. Plain speech is typed into
the focused window; "open ...", "switch to ...", "research ..." and
"Spotify play/pause/next" drive the desktop.

Usage:
    python secretary_ptt.py

Environment Variables:
    SECRETARY_OPENAI_API_KEY    Key for the transcription API (or OPENAI_API_KEY)
    SECRETARY_HF_TOKEN          Token for the command router (or HF_TOKEN)
    SECRETARY_LANGUAGES         Comma-separated language codes, or 'auto'
    SECRETARY_AUDIO_DEVICE      Audio input device index
    SECRETARY_REQUEST_TIMEOUT   Seconds before an API request is abandoned
    SECRETARY_DICTIONARY_FILE   JSON list of word/correction entries
    SECRETARY_STYLE_FILE        Text file with writing style examples
    SECRETARY_TONES             Play start/stop tones: '1' or '0'
    SECRETARY_VERBOSE           Enable verbose logging: '1' or 'true'
"""

from secretary.__main__ import main

if __name__ == "__main__":
    raise SystemExit(main())
