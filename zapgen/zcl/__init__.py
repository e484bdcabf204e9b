"""ZCL metadata loading."""
