"""ftpclient: a blocking FTP client with passive-mode transfers."""
