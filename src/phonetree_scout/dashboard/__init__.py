"""
Browser dashboard: live transcript page and its WebSocket feed.
"""
