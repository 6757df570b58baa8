"""Backend adapters implementing the mapper and transaction ports."""
