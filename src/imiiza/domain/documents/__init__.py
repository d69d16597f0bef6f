"""Applicant document handling: upload validation and the object storage port."""
