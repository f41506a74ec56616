"""voxref test suite."""
