"""Streamlit review app for processed responses."""
