"""
HubSpot CRM integration: company lookup, CRM card and call notes.
"""
