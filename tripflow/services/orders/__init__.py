"""Order and order group rollup."""
