"""TradeCraft AI backend: quotes, subscriptions and Stripe billing."""

__version__ = "1.0.0"
