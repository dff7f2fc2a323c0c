"""
Stream payload ingestion.

Parses raw feed text into trade records, classifies payloads into snapshot,
incremental and ignored messages, and routes accepted trades into the ledger.
"""
