"""
Phone Tree Scout: live call tracking bridge between Twilio, dashboards and HubSpot.
"""

__version__ = "0.1.0"
