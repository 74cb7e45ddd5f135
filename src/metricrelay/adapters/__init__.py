"""Adapters connecting the core to the network, storage and logging."""
