"""Visa application API: submission, status workflow, agent acceptance."""
