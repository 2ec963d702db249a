# Peripherals (console)
