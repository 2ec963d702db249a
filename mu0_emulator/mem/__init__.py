# Word memory with the memory-mapped console
