"""
Test suite for schemasync.

Unit tests for the definition model, the PostgreSQL driver, structure
sessions, configuration and the command line.
"""
