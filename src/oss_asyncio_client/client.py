from .objects import _ObjectOperations


class OSSClient(_ObjectOperations):
    pass
