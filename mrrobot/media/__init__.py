"""MR-ROBOT - media helpers for knowledge-base articles."""
