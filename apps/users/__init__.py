"""Users app: marketplace accounts, host payout accounts and income."""
