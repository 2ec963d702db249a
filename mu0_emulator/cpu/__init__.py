# CPU model: registers and instruction decoder
