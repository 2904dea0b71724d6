"""
Briefcast - short narrated audio briefs generated from a topic.
"""

__version__ = "0.1.0"
