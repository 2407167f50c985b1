"""Offline queue, remote client and the protocols that connect them."""
