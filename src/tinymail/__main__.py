from getpass import getpass

from tinymail.mailer import DEFAULT_SMTP_PORT, Mailer, MailerConfig
from tinymail.message import Message


raw_hostname = input("SMTP server hostname [localhost]: ")  # nosec
raw_port = input(f"SMTP server port [{DEFAULT_SMTP_PORT}]: ")  # nosec
raw_user = input("Username: ")  # nosec
password = getpass("Password: ")
raw_tls = input("Use STARTTLS? [Y/n]: ")  # nosec
raw_sender = input("From: ")  # nosec
raw_recipients = input("To: ")  # nosec
subject = input("Subject: ")  # nosec

hostname = raw_hostname or "localhost"
port = int(raw_port) if raw_port else DEFAULT_SMTP_PORT
use_tls = raw_tls.strip().lower() not in ("n", "no")
recipients = [address.strip() for address in raw_recipients.split(",")]
lines: list[str] = []

print("Enter message, end with ^D:")
while True:
    try:
        lines.append(input())  # nosec
    except EOFError:
        break

message = Message.from_string("\n".join(lines))
message.set_from(raw_sender or raw_user)
message.set_to(*recipients)
message.set_subject(subject)
print(f"Message length (characters): {len(message.body)}")

config = MailerConfig(
    user=raw_user, password=password, host=hostname, port=port, tls=use_tls
)
Mailer(config).set_message(message).send()

print(f"Message sent to {config.address}")
