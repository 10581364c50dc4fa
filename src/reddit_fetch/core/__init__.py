"""Core domain package for reddit-fetch.

Core contains quality filtering, fingerprinting, dedup and watermark logic
without any Reddit, HTTP or storage-specific code, keeping the business logic
portable.
"""
