"""Data contracts - validation of inbound requests and reasoning replies."""
