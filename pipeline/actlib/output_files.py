import csv
import os

from actlib import record_mappers


#============================================
def prepare_output_dir(path_text: str) -> str:
	"""
	Create the output directory with parents and return its absolute path.
	"""
	output_dir = os.path.abspath(path_text)
	os.makedirs(output_dir, exist_ok=True)
	return output_dir


#============================================
class ActivityOutputFile:
	"""
	Append-only csv text file for one record layout.
	"""

	def __init__(
		self,
		output_dir: str,
		layout: record_mappers.RecordLayout,
		csv_quoting: bool = False,
	):
		self.layout = layout
		self.path = os.path.join(output_dir, layout.file_name)
		self.csv_quoting = csv_quoting
		self.row_count = 0
		self._handle = None
		self._writer = None
		self._closed = False

	#============================================
	def open(self) -> None:
		"""
		Create or truncate the file and write the header line.
		"""
		self._handle = open(self.path, "w", encoding="utf-8", newline="")
		if self.csv_quoting:
			self._writer = csv.writer(self._handle, lineterminator="\n")
		self._write_line(self.layout.header)

	#============================================
	def _write_line(self, fields: list[str]) -> None:
		if self._handle is None or self._closed:
			raise RuntimeError(f"Output file is not open: {self.path}")
		if self._writer is not None:
			self._writer.writerow(fields)
			return
		self._handle.write(",".join(fields))
		self._handle.write("\n")

	#============================================
	def write_row(self, fields: list[str]) -> None:
		"""
		Append one record row.
		"""
		self._write_line(fields)
		self.row_count += 1

	#============================================
	def close(self) -> None:
		"""
		Flush and close; later calls do nothing.
		"""
		if self._handle is None or self._closed:
			return
		self._handle.flush()
		self._handle.close()
		self._closed = True

	#============================================
	def __enter__(self):
		self.open()
		return self

	#============================================
	def __exit__(self, exc_type, exc, tb) -> None:
		self.close()
