"""
MockVoice - Spoken Mock-Interview Coach

Drives a turn-taking voice interview: asks questions per topic, records and
transcribes answers, evaluates them, decides on follow-ups and closes with
a final summary.
"""

__version__ = "0.1.0"
__author__ = "MockVoice Team"
