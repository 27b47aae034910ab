PROJECT_NAME = "AppWeaver-AI"
API_V1_STR = "/api/v1"
USER_ID_HEADER = "X-User-Id"
