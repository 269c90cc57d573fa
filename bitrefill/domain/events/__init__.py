"""Domain Event definitions.

Represents significant occurrences during catalog fetching and invoice
polling that other parts of the system might react to.
"""
