class MalformedEventError(Exception):
    """Request body is not a JSON object"""

    def __init__(self, message: str = "Invalid JSON format."):
        self.message = message
        self.status_code = 400
        super().__init__(self.message)
