SERVICE_NAME = "steamweb"
