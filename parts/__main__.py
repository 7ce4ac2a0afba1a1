from parts.main import entrypoint

entrypoint()
