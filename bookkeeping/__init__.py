"""Personal-finance bookkeeping API with owner-scoped payables and receivables."""
