
class FolderServerError(Exception):
	"""Base class for every error that ends a single request with an HTTP error status."""
	status_code = 500

	def __init__(self, message = None):
		if message is None:
			message = self.__class__.__name__
		self.message = message
		super().__init__(self.message)

class BadRequestError(FolderServerError):
	status_code = 400

class PathEscapeError(FolderServerError):
	status_code = 403

	def __init__(self, request_path = None, message = "Access denied"):
		self.request_path = request_path
		super().__init__(message)

class NotFoundError(FolderServerError):
	status_code = 404

	def __init__(self, message = "File or directory not found"):
		super().__init__(message)

class ListingError(FolderServerError):
	def __init__(self, path, innerexception = None, message = "Unable to read directory"):
		self.path = path
		self.innerexception = innerexception
		super().__init__(message)

class ReadError(FolderServerError):
	def __init__(self, path, innerexception = None, message = "Unable to read file"):
		self.path = path
		self.innerexception = innerexception
		super().__init__(message)

class UploadDestinationEscapeError(PathEscapeError):
	pass

class MultipartError(FolderServerError):
	status_code = 400

class UploadTooLargeError(FolderServerError):
	status_code = 413

	def __init__(self, limit:int):
		self.limit = limit
		super().__init__('Upload too large (max: %s bytes)' % limit)
