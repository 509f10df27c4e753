# uconsole_image/templates.py
# Static configuration written into the image. Only $-placeholders are substituted.
from string import Template

BOOT_CONFIG = """\
# uConsole CM5 Boot Configuration
# Generated by build_arch_sway_cm5.sh

[all]
arm_64bit=1
disable_overscan=1
dtparam=audio=on
auto_initramfs=1
max_framebuffers=2

# Audio remapping for uConsole speaker
dtoverlay=audremap,pins_12_13
dtoverlay=dwc2,dr_mode=host

# Antenna configuration
dtparam=ant2

# SPI for display
dtparam=spi=on

[pi4]
# CM4 fallback (if kernel supports both)
dtoverlay=clockworkpi-uconsole
dtoverlay=vc4-kms-v3d-pi4,cma-384
dtparam=pciex1=off
enable_uart=1

[pi5]
# CM5 primary configuration
dtoverlay=clockworkpi-uconsole-cm5
dtoverlay=vc4-kms-v3d-pi5,cma-384
dtparam=pciex1=off
enable_uart=1

# Kernel and initramfs
kernel=vmlinuz-linux-clockworkpi-git
initramfs initramfs-linux-clockworkpi-git.img followkernel
"""

CMDLINE = Template("root=UUID=$root_uuid rw rootwait console=tty1 loglevel=4\n")

SWAY_CONFIG = """\
# Sway configuration for the ClockworkPi uConsole

# Alt as modifier, the keyboard has no Super key
set $mod Mod1
set $term foot
set $menu wofi --show drun

# 5" panel
output DSI-2 scale 1.2

# Trackball: hold the middle button and move to scroll
input type:pointer {
    scroll_button button3
    scroll_method on_button_down
    natural_scroll enabled
}

input type:keyboard {
    xkb_layout us
}

bindsym $mod+Return exec $term
bindsym $mod+d exec $menu
bindsym $mod+Shift+q kill
bindsym $mod+Shift+c reload
bindsym $mod+Shift+e exec swaynag -t warning -m 'Exit sway?' -B 'Yes' 'swaymsg exit'

# Focus
bindsym $mod+h focus left
bindsym $mod+j focus down
bindsym $mod+k focus up
bindsym $mod+l focus right
bindsym $mod+Left focus left
bindsym $mod+Down focus down
bindsym $mod+Up focus up
bindsym $mod+Right focus right

# Move windows
bindsym $mod+Shift+h move left
bindsym $mod+Shift+j move down
bindsym $mod+Shift+k move up
bindsym $mod+Shift+l move right
bindsym $mod+Shift+Left move left
bindsym $mod+Shift+Down move down
bindsym $mod+Shift+Up move up
bindsym $mod+Shift+Right move right

# Workspaces
bindsym $mod+1 workspace number 1
bindsym $mod+2 workspace number 2
bindsym $mod+3 workspace number 3
bindsym $mod+4 workspace number 4
bindsym $mod+5 workspace number 5

bindsym $mod+Shift+1 move container to workspace number 1
bindsym $mod+Shift+2 move container to workspace number 2
bindsym $mod+Shift+3 move container to workspace number 3
bindsym $mod+Shift+4 move container to workspace number 4
bindsym $mod+Shift+5 move container to workspace number 5

# Layout
bindsym $mod+b splith
bindsym $mod+v splitv
bindsym $mod+s layout stacking
bindsym $mod+w layout tabbed
bindsym $mod+e layout toggle split
bindsym $mod+f fullscreen
bindsym $mod+Shift+space floating toggle
bindsym $mod+space focus mode_toggle

# Scratchpad
bindsym $mod+Shift+minus move scratchpad
bindsym $mod+minus scratchpad show

mode "resize" {
    bindsym h resize shrink width 10px
    bindsym j resize grow height 10px
    bindsym k resize shrink height 10px
    bindsym l resize grow width 10px
    bindsym Left resize shrink width 10px
    bindsym Down resize grow height 10px
    bindsym Up resize shrink height 10px
    bindsym Right resize grow width 10px
    bindsym Return mode "default"
    bindsym Escape mode "default"
}
bindsym $mod+r mode "resize"

# Backlight moves in steps of 20, never below 20
bindsym --locked XF86MonBrightnessUp exec light -S "$(light -G | awk '{ print (int($1 / 10) + 2) * 10 }')"
bindsym --locked XF86MonBrightnessDown exec light -S "$(light -G | awk '{ v = (int($1 / 10) - 2) * 10; print (v < 20 ? 20 : v) }')"

bindsym --locked XF86AudioRaiseVolume exec wpctl set-volume @DEFAULT_AUDIO_SINK@ 5%+
bindsym --locked XF86AudioLowerVolume exec wpctl set-volume @DEFAULT_AUDIO_SINK@ 5%-
bindsym --locked XF86AudioMute exec wpctl set-mute @DEFAULT_AUDIO_SINK@ toggle

bindsym Print exec grim -g "$(slurp)" - | wl-copy
bindsym $mod+Ctrl+l exec swaylock -f -c 000000

exec swayidle -w \\
    timeout 300 'swaylock -f -c 000000' \\
    timeout 600 'swaymsg "output * dpms off"' \\
    resume 'swaymsg "output * dpms on"' \\
    before-sleep 'swaylock -f -c 000000'

bar {
    position top
    status_command waybar
    colors {
        statusline #ffffff
        background #323232
        inactive_workspace #32323200 #32323200 #5c5c5c
    }
}

exec mako
exec /usr/lib/polkit-gnome/polkit-gnome-authentication-agent-1 || true

default_border pixel 2
gaps inner 5
gaps outer 5

include /etc/sway/config.d/*
"""

WAYBAR_CONFIG = """\
{
    "layer": "top",
    "position": "top",
    "height": 24,
    "modules-left": ["sway/workspaces", "sway/mode"],
    "modules-center": ["sway/window"],
    "modules-right": ["pulseaudio", "network", "battery", "clock"],

    "sway/workspaces": {
        "disable-scroll": true
    },

    "clock": {
        "format": "{:%H:%M}",
        "format-alt": "{:%Y-%m-%d}"
    },

    "battery": {
        "format": "{icon} {capacity}%",
        "format-icons": ["", "", "", "", ""],
        "format-charging": " {capacity}%"
    },

    "network": {
        "format-wifi": " {signalStrength}%",
        "format-ethernet": "",
        "format-disconnected": ""
    },

    "pulseaudio": {
        "format": "{icon} {volume}%",
        "format-muted": "",
        "format-icons": {
            "default": ["", "", ""]
        },
        "on-click": "wpctl set-mute @DEFAULT_AUDIO_SINK@ toggle"
    }
}
"""

WAYBAR_STYLE = """\
* {
    font-family: "DejaVu Sans", "Font Awesome 6 Free";
    font-size: 12px;
}

window#waybar {
    background-color: rgba(43, 48, 59, 0.9);
    color: #ffffff;
}

#workspaces button {
    padding: 0 5px;
    color: #ffffff;
}

#workspaces button.focused {
    background-color: #64727D;
}

#clock, #battery, #network, #pulseaudio {
    padding: 0 10px;
}

#battery.charging {
    color: #26A65B;
}

#battery.warning:not(.charging) {
    color: #f53c3c;
}
"""

FOOT_CONFIG = """\
[main]
font=monospace:size=10
dpi-aware=yes

[colors]
background=282828
foreground=ebdbb2

[cursor]
color=282828 ebdbb2
"""

BASH_PROFILE = """\
# Start Sway on tty1
if [ -z "$DISPLAY" ] && [ "$XDG_VTNR" = 1 ]; then
    exec sway
fi
"""

# $$ escapes the literal $TERM for string.Template
AUTOLOGIN = Template("""\
[Service]
ExecStart=
ExecStart=-/sbin/agetty -o '-p -f -- \\\\u' --noclear --autologin $user %I $$TERM
""")
