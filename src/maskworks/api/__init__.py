"""Maskworks - thin FastAPI host shell for editor sessions.

This package exposes editor sessions over HTTP so a browser front end can
drive the mask editor and receive the exported mask. It owns no
persistence, authentication, or model invocation.

Modules
-------
main
    FastAPI application with all route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for API request validation.
session_store
    Bounded in-memory registry of editor sessions.
"""
