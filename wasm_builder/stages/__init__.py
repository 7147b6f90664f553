"""External tool stages: descriptors and the blocking runner."""
