"""
Telephony provider integration (Twilio REST API and webhooks).
"""
