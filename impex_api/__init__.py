"""
ImpexInfo API backend.

This package provides a FastAPI application exposing blog post CRUD over
MongoDB and a contact form that relays submissions by email, together with
the startup sequence that brings the store and mail relay online.
"""
