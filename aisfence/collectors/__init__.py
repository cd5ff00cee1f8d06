"""Inputs: the aisstream.io session, the tracking controller and pollers."""
