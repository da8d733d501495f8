"""VideoTube: REST backend for a video-sharing platform."""
