# Hand to Heart - Learn Chinese Sign Language, Weave It Into Art
# Author: Hand to Heart Team
# Version: 1.0.0

"""
Core modules for the sign learning experience:
- signs: Catalog of learnable Chinese Sign Language gestures
- config: Environment-driven application configuration
- camera: Webcam stream handler and still capture
- hand_tracking: MediaPipe hand guide overlay
- recognition: Gesture verification with a vision model
- image_generator: Illustration backends and style presets
- composition: Poem and illustration generation
- scheduler: Delayed callbacks and background task runners
- session: Phase state machine
- ui: Main application interface
"""

__version__ = "1.0.0"
__author__ = "Hand to Heart Team"
