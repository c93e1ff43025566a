"""credlife - account credential lifecycle service."""
