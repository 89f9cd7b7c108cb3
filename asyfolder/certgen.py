import os
import uuid
import datetime
import tempfile

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from asyfolder import logger


def generate_selfsigned(hostname = 'localhost', key_exp = 65537, key_size = 2048):
	"""Returns (cert_pem, key_pem, err) for a one year self-signed server certificate."""
	try:
		logger.debug('Generating self-signed certificate for %s' % hostname)
		one_day = datetime.timedelta(1, 0, 0)
		one_year = datetime.timedelta(365, 0, 0)
		now = datetime.datetime.now(datetime.timezone.utc)
		private_key = rsa.generate_private_key(
			public_exponent=key_exp,
			key_size=key_size,
		)
		name = x509.Name([
			x509.NameAttribute(NameOID.COMMON_NAME, hostname),
		])
		builder = x509.CertificateBuilder()
		builder = builder.subject_name(name)
		builder = builder.issuer_name(name)
		builder = builder.not_valid_before(now - one_day)
		builder = builder.not_valid_after(now + one_year)
		builder = builder.serial_number(int(uuid.uuid4()))
		builder = builder.public_key(private_key.public_key())
		builder = builder.add_extension(
			x509.SubjectAlternativeName([x509.DNSName(hostname)]), critical=False,
		)
		builder = builder.add_extension(
			x509.BasicConstraints(ca=False, path_length=None), critical=True,
		)
		certificate = builder.sign(private_key=private_key, algorithm=hashes.SHA256())

		cert_pem = certificate.public_bytes(
			encoding=serialization.Encoding.PEM,
		)
		key_pem = private_key.private_bytes(
			encoding=serialization.Encoding.PEM,
			format=serialization.PrivateFormat.TraditionalOpenSSL,
			encryption_algorithm=serialization.NoEncryption()
		)
		return cert_pem, key_pem, None
	except Exception as e:
		logger.exception('generate_selfsigned')
		return None, None, e

def generate_selfsigned_cert(hostname = 'localhost', cache_dir = None):
	"""Writes a self-signed certificate and key to disk. Returns (certfile, keyfile, err)."""
	cert_pem, key_pem, err = generate_selfsigned(hostname)
	if err is not None:
		return None, None, err
	try:
		if cache_dir is None:
			cache_dir = tempfile.mkdtemp(prefix='asyfolder_')
		certfile = os.path.join(cache_dir, 'cert.pem')
		keyfile = os.path.join(cache_dir, 'key.pem')
		with open(certfile, 'wb') as f:
			f.write(cert_pem)
		with open(keyfile, 'wb') as f:
			f.write(key_pem)
		os.chmod(keyfile, 0o600)
		return certfile, keyfile, None
	except Exception as e:
		return None, None, e
