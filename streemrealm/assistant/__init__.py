"""Claude build assistant and its tools."""
