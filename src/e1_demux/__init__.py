"""
E1 demultiplexer experiments.

This package contains small, focused tools for splitting a byte-interleaved
E1 frame into its per-timeslot channels and for comparing the speed of
different traversal orders of that transform on the local machine.
"""
