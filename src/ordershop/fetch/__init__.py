"""Fetch core: strategy selection, batched association loading, flat-row
regrouping and projection building."""
