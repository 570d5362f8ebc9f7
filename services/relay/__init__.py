"""Relay service exposing the plant-care clients over HTTP."""
