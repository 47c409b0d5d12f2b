"""snapkeeper: expiry sweeps and moderation helpers for ephemeral snaps."""
