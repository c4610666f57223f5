from community_watch.services.storage_service import LocalBlobStore, get_blob_store
from community_watch.services.email_service import MailSender, SmtpMailSender, get_mail_sender
