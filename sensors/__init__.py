"""GPIO sensor input for the Homeboard relay.

Only the PIR motion watcher lives here. It needs the gpiod library and a
GPIO character device, so importing it fails off the Pi; the motion
source catches that and the relay runs without it.
"""
