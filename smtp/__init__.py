"""
Mail protocol STARTTLS negotiation (SMTP, IMAP) and leaf certificate validation.
"""
