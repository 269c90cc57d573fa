"""API Resilience Implementations.

Contains helpers for reading server-reported rate limits and deciding
how long to back off before the next batch of requests.
Bounded Context: API Resilience
"""
