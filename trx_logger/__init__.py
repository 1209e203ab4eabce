"""Legacy TRX report writer for unit test runs."""
