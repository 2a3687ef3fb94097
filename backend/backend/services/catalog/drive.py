from __future__ import annotations

import io
import json

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseDownload

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.readonly"]
FOLDER_MIME = "application/vnd.google-apps.folder"


def build_drive_service(credentials_json: str):
    """Drive v3 client from a stringified service account key.

    OAuth client secrets need a browser flow, which a batch job can't do.
    """
    info = json.loads(credentials_json)
    if info.get("type") == "service_account" or info.get("client_email"):
        creds = service_account.Credentials.from_service_account_info(info, scopes=DRIVE_SCOPES)
        return build("drive", "v3", credentials=creds, cache_discovery=False)
    if "web" in info:
        raise ValueError("OAuth client credentials are not supported here; provide a service account key")
    raise ValueError("Invalid GOOGLE_CREDENTIALS_JSON")


class DriveImageSource:
    """Site folders directly under one Drive folder."""

    def __init__(self, service, root_folder_id: str):
        self.service = service
        self.root_folder_id = root_folder_id

    def _children(self, folder_id: str) -> list[dict]:
        files: list[dict] = []
        page_token = None
        while True:
            res = (
                self.service.files()
                .list(
                    q=f"'{folder_id}' in parents and trashed=false",
                    fields="nextPageToken, files(id, name, mimeType)",
                    pageToken=page_token,
                    pageSize=1000,
                )
                .execute()
            )
            files.extend(res.get("files", []))
            page_token = res.get("nextPageToken")
            if not page_token:
                return files

    def folders(self):
        for f in self._children(self.root_folder_id):
            if f.get("mimeType") == FOLDER_MIME:
                yield f["name"], f["id"]

    def files(self, folder):
        for f in self._children(folder):
            if f.get("mimeType") != FOLDER_MIME:
                yield f["name"], f["id"]

    def read(self, handle) -> bytes:
        request = self.service.files().get_media(fileId=handle)
        buf = io.BytesIO()
        downloader = MediaIoBaseDownload(buf, request)
        done = False
        while not done:
            _, done = downloader.next_chunk()
        return buf.getvalue()
