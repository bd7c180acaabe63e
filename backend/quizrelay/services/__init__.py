"""Relay domain services: record store, session registry and event relay.

Transport handlers and HTTP routes import these, keeping Socket.IO and
Flask request concerns out of the relay logic.
"""
