"""Persistence layer shared by the bot service: pool, schema, repositories."""
