"""Line protocol transport and message routing."""
