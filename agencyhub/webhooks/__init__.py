"""WorkOS inbound webhooks.

Signature-verified, decoded into typed events, and applied to the data
store. Accepted invitations become users of their organization.
"""
