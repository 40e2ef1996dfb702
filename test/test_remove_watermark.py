import io
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest import mock

import config
import remove_watermark
from media_fixtures import FakeMuxer, write_image, write_video


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.work_dir = os.path.join(self.tmp, 'work')
        patcher = mock.patch.object(config, 'TEMP_DIR', self.work_dir)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(shutil.rmtree, self.tmp, True)

    def path(self, name):
        return os.path.join(self.tmp, name)

    def run_cli(self, *args):
        out = io.StringIO()
        with redirect_stdout(out):
            code = remove_watermark.main(list(args))
        return code, out.getvalue()

    def test_single_image(self):
        src = write_image(self.path('in.jpg'))
        code, output = self.run_cli(src, '--region', '40,30,16,10',
                                    '-o', self.path('out.jpg'), '--lossless')
        self.assertEqual(code, 0)
        self.assertTrue(os.path.exists(self.path('out.png')))
        self.assertIn('out.png', output)

    def test_image_batch(self):
        a = write_image(self.path('a.png'))
        b = write_image(self.path('b.png'))
        code, output = self.run_cli(a, b, '--region', '0,0,8,8')
        self.assertEqual(code, 0)
        self.assertEqual(output.count('OK'), 2)

    def test_region_out_of_bounds_exits_with_failure(self):
        src = write_image(self.path('in.png'))
        code, _ = self.run_cli(src, '--region', '60,40,10,10')
        self.assertEqual(code, 1)

    def test_region_required(self):
        src = write_image(self.path('in.png'))
        with mock.patch('sys.stderr', new_callable=io.StringIO):
            with self.assertRaises(SystemExit) as ctx:
                self.run_cli(src)
        self.assertEqual(ctx.exception.code, 2)

    def test_info(self):
        video = write_video(self.path('clip.mp4'))
        code, output = self.run_cli(video, '--info')
        self.assertEqual(code, 0)
        self.assertIn('64x48', output)
        self.assertIn('10 frames', output)

    def test_video(self):
        video = write_video(self.path('clip.mp4'))
        with mock.patch('video_processor.FFmpegMuxer', return_value=FakeMuxer()):
            code, output = self.run_cli(video, '--region', '40,30,16,10',
                                        '-o', self.path('clean.mp4'))
        self.assertEqual(code, 0)
        self.assertTrue(os.path.exists(self.path('clean.mp4')))
        self.assertIn('10 frames', output)

    def test_cleanup(self):
        os.makedirs(self.work_dir)
        with open(os.path.join(self.work_dir, 'leftover.png'), 'wb') as f:
            f.write(b'x')
        code, output = self.run_cli('--cleanup')
        self.assertEqual(code, 0)
        self.assertIn('Removed 1', output)
        self.assertEqual(os.listdir(self.work_dir), [])


if __name__ == '__main__':
    unittest.main()
