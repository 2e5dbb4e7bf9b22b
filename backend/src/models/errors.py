class RelayError(Exception):
    ''' Base class for relay hub errors.'''

class CapacityExceeded(RelayError):
    ''' Viewer pool is full; the connection must be rejected.'''

    def __init__(self, capacity: int):
        super().__init__(f"viewer capacity of {capacity} reached")
        self.capacity = capacity

class DecodeFailure(RelayError):
    ''' Inbound frame is not a valid message envelope.'''
