from .sql import SQLStore, JSONBlob
