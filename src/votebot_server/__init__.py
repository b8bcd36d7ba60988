"""votebot_server — FastAPI REST API for the voter-registration bot.

Exposes the ConversationEngine over HTTP: starting conversations,
receiving SMS from the gateway, jumping conversations to a step, and
read-only chain reference data.
"""
