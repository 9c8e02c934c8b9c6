"""Order-ticket, pricing and market-cache client for a spot exchange."""
