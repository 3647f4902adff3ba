"""Birthday fund service: yearly gift collection workflow driven over Telegram."""
