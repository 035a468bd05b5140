"""AgencyHub billing plans and provider webhooks (Lemon Squeezy, WorkOS)."""
