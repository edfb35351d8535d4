"""Record types and ports shared by the front end and the worker."""
