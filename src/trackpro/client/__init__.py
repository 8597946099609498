"""Python viewer — live-update receiver, polled query cache, reconciliation."""
