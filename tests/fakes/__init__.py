"""In-memory fakes of the backend collaborators."""
